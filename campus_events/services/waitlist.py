import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from campus_events.models.events import Event
from campus_events.models.registrations import Registration, RegistrationStatus
from campus_events.services.ledger import claim_seat, resync_event_counts
from campus_events.services.notifications import Outbox
from campus_events.services.tickets import apply_ticket

logger = logging.getLogger(__name__)


def next_waitlist_position(db: Session, event_id: int) -> int:
    current_max = db.scalar(
        select(func.max(Registration.waitlist_position)).where(
            Registration.event_id == event_id,
            Registration.status == RegistrationStatus.WAITLIST.value,
        )
    )
    return int(current_max or 0) + 1


def compact_waitlist(db: Session, event_id: int, vacated_position: Optional[int]) -> int:
    """
    Close the gap left at ``vacated_position``.

    The departing registration must already be flushed with its new status,
    so it is not shifted along with the others. Returns the number of rows moved.
    """
    if not vacated_position:
        return 0
    db.flush()
    stmt = (
        update(Registration)
        .where(Registration.event_id == event_id)
        .where(Registration.status == RegistrationStatus.WAITLIST.value)
        .where(Registration.waitlist_position > vacated_position)
        .values(waitlist_position=Registration.waitlist_position - 1)
        .execution_options(synchronize_session="fetch")
    )
    res = db.execute(stmt)
    return res.rowcount  # type: ignore


def leave_waitlist(db: Session, registration: Registration, new_status: str) -> None:
    """Move a waitlisted registration to ``new_status`` and compact the ranks behind it."""
    vacated = registration.waitlist_position
    registration.status = new_status
    registration.waitlist_position = None
    db.flush()
    compact_waitlist(db, registration.event_id, vacated)


def waitlist_snapshot(db: Session, event_id: int) -> list[Registration]:
    return list(
        db.scalars(
            select(Registration)
            .where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.WAITLIST.value,
            )
            .order_by(Registration.waitlist_position)
        )
    )


def promote_next(db: Session, event: Event, outbox: Optional[Outbox] = None) -> Optional[Registration]:
    """
    Promote the head of the waitlist into one freed seat.

    Call once per vacated seat. Returns the promoted registration, or None
    when nobody is waiting or no seat is actually free.
    """
    head = db.scalars(
        select(Registration)
        .where(
            Registration.event_id == event.id,
            Registration.status == RegistrationStatus.WAITLIST.value,
        )
        .order_by(Registration.waitlist_position)
        .limit(1)
    ).first()
    if head is None:
        return None

    resync_event_counts(db, event)
    if event.seats_available <= 0:
        logger.info("No free seat on event %s, waitlist left untouched", event.id)
        return None

    claim_seat(db, event)
    leave_waitlist(db, head, RegistrationStatus.APPROVED.value)
    resync_event_counts(db, event)

    issued = apply_ticket(event, head)
    logger.info("Promoted registration %s from the waitlist of event %s", head.id, event.id)

    if outbox is not None:
        if not issued:
            outbox.reissue_ticket(head.id)
        outbox.notify(
            head.participant_id,
            type="registration",
            title="Registration Approved",
            message=f"You've been moved from the waitlist to approved status for: {event.title}",
            data={"event_id": event.id, "registration_id": head.id},
            priority="high",
        )
        outbox.email(
            "waitlist_promoted",
            [head.participant_email],
            {"event_title": event.title, "event_id": event.id, "registration_id": head.id},
        )
    return head


def promote_for_vacancies(db: Session, event: Event, outbox: Optional[Outbox] = None) -> list[Registration]:
    """Promote one waitlisted registration per free seat."""
    promoted = []
    resync_event_counts(db, event)
    while event.seats_available > 0 and event.current_waitlisted > 0:
        registration = promote_next(db, event, outbox)
        if registration is None:
            break
        promoted.append(registration)
    return promoted
