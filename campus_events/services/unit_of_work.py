import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from campus_events.services.errors import CampusEventsError, TransactionAbortError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Run one lifecycle operation as a single transaction.

    Commits when the block finishes. Any exception rolls everything back:
    domain errors are re-raised unchanged, anything else is logged under a
    fresh reference and re-raised as TransactionAbortError.
    """
    try:
        yield db
        db.commit()
    except CampusEventsError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        reference = uuid.uuid4().hex[:12]
        logger.exception("Transaction aborted (reference %s)", reference)
        raise TransactionAbortError(reference) from exc
