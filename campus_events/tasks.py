import logging

from campus_events.core.celery_config import celery_app
from campus_events.database.db import SessionLocal
from campus_events.services.errors import EventBusyError
from campus_events.services.notifications import create_notification, deliver_email
from campus_events.services.registrations import reissue_ticket

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def send_notification_task(self, user_id: int, payload: dict):
    """Persist an in-app notification for a user."""
    db = SessionLocal()
    try:
        notification = create_notification(db, user_id, payload)
        return notification.id
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def send_email_task(self, kind: str, recipients: list, data: dict):
    try:
        return deliver_email(kind, recipients, data)
    except OSError as exc:
        logger.warning("Email %s failed, retrying: %s", kind, exc)
        raise self.retry(exc=exc)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def reissue_ticket_task(self, registration_id: int):
    """Retry ticket issuance that failed during an approval or promotion."""
    db = SessionLocal()
    try:
        issued = reissue_ticket(db, registration_id)
    except EventBusyError as exc:
        logger.warning("Event busy while reissuing ticket %s, retrying", registration_id)
        raise self.retry(exc=exc)
    finally:
        db.close()
    if not issued:
        logger.warning("Ticket for registration %s still missing", registration_id)
    return issued
