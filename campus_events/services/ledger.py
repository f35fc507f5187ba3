"""
Seat bookkeeping for events.

The counters on ``Event`` are caches of the registration set. Lifecycle
operations mutate registrations, then call ``resync_event_counts`` so the
cached values are recomputed from the rows inside the same transaction.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from campus_events.core.timeutils import as_utc, utcnow
from campus_events.models.events import OPEN_STATUSES, Event
from campus_events.models.registrations import Registration, RegistrationStatus
from campus_events.services.errors import CapacityExceededError

NOT_OPEN = "Event is not open for registration"
DEADLINE_PASSED = "Registration deadline has passed"
NO_SEATS = "No seats available and waitlist is full or disabled"


@dataclass(frozen=True)
class Admission:
    can_register: bool
    waitlist: bool = False
    reason: Optional[str] = None


def evaluate_registration(event: Event, now: Optional[datetime] = None) -> Admission:
    """Decide whether a new registration attempt is admissible, and where it lands."""
    if event.status not in OPEN_STATUSES:
        return Admission(can_register=False, reason=NOT_OPEN)

    deadline = as_utc(event.registration_deadline)
    if deadline is not None and as_utc(now or utcnow()) > deadline:
        return Admission(can_register=False, reason=DEADLINE_PASSED)

    if event.seats_available > 0:
        return Admission(can_register=True, waitlist=False)

    if event.waitlist_enabled and (event.max_waitlist == 0 or event.current_waitlisted < event.max_waitlist):
        return Admission(can_register=True, waitlist=True)

    return Admission(can_register=False, reason=NO_SEATS)


def recompute_counts(event: Event, approved_count: int, waitlisted_count: int) -> Event:
    event.current_booked = approved_count
    event.current_waitlisted = waitlisted_count
    return event


def count_by_status(db: Session, event_id: int, status: str) -> int:
    count = db.scalar(
        select(func.count(Registration.id)).where(
            Registration.event_id == event_id,
            Registration.status == status,
        )
    )
    return int(count or 0)


def resync_event_counts(db: Session, event: Event) -> Event:
    db.flush()
    approved = count_by_status(db, event.id, RegistrationStatus.APPROVED.value)
    waitlisted = count_by_status(db, event.id, RegistrationStatus.WAITLIST.value)
    recompute_counts(event, approved, waitlisted)
    db.flush()
    return event


def claim_seat(db: Session, event: Event) -> None:
    """
    Take one seat on the locked event row, or raise CapacityExceededError.

    The guard lives in the UPDATE itself so the check and the increment
    cannot be separated by another writer.
    """
    db.flush()
    stmt = (
        update(Event)
        .where(Event.id == event.id)
        .where(Event.current_booked < Event.max_seats)
        .values(current_booked=Event.current_booked + 1)
        .execution_options(synchronize_session=False)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise CapacityExceededError()
    db.refresh(event)


def registration_counts(db: Session, event_id: int) -> dict:
    rows = db.execute(
        select(Registration.status, func.count(Registration.id))
        .where(Registration.event_id == event_id)
        .group_by(Registration.status)
    ).all()
    by_status = {status: int(count) for status, count in rows}
    return {
        "approved": by_status.get(RegistrationStatus.APPROVED.value, 0),
        "pending": by_status.get(RegistrationStatus.PENDING.value, 0),
        "waitlisted": by_status.get(RegistrationStatus.WAITLIST.value, 0),
        "rejected": by_status.get(RegistrationStatus.REJECTED.value, 0),
        "cancelled": by_status.get(RegistrationStatus.CANCELLED.value, 0),
    }
