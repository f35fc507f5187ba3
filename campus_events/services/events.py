import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from campus_events.models.events import Event, EventStatus
from campus_events.models.registrations import ACTIVE_STATUSES, Registration, RegistrationStatus
from campus_events.services.errors import InvalidTransitionError, NotFoundError, ValidationError
from campus_events.services.ledger import registration_counts, resync_event_counts
from campus_events.services.locking import event_lock, venue_lock
from campus_events.services.notifications import Outbox
from campus_events.services.registrations import get_event_for_update
from campus_events.services.unit_of_work import unit_of_work
from campus_events.services.venues import get_venue, release_venue, reserve_slot
from campus_events.services.waitlist import promote_for_vacancies

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "title",
    "description",
    "category",
    "registration_deadline",
    "auto_approve_registrations",
    "waitlist_enabled",
    "max_waitlist",
    "max_seats",
}
NULLABLE_FIELDS = {"registration_deadline"}


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


def create_event(db: Session, data: dict) -> Event:
    """
    Create an event in pending status.

    With a venue, max_seats defaults to its capacity and the time slot is
    booked in the same transaction as the event insert.
    """
    data = dict(data)
    venue_id = data.get("venue_id")
    if venue_id is None:
        if not data.get("max_seats"):
            raise ValidationError("max_seats is required when no venue is given")
        with unit_of_work(db):
            event = Event(**data, status=EventStatus.PENDING.value)
            db.add(event)
    else:
        with venue_lock(venue_id), unit_of_work(db):
            venue = get_venue(db, venue_id)
            if not data.get("location"):
                data["location"] = venue.name
            if not data.get("max_seats"):
                data["max_seats"] = venue.capacity
            event = Event(**data, status=EventStatus.PENDING.value, venue_capacity=venue.capacity)
            db.add(event)
            db.flush()
            reserve_slot(db, venue, event.date, event.start_time, event.end_time, event.id)

    db.refresh(event)
    logger.info("Event %s created by organizer %s", event.id, event.organizer_id)
    return event


def _set_status(db: Session, event_id: int, status: str, allowed_from: set[str], title: str, priority: str) -> Event:
    outbox = Outbox()
    with event_lock(event_id), unit_of_work(db):
        event = get_event_for_update(db, event_id)
        if event.status not in allowed_from:
            raise InvalidTransitionError(f"Cannot move a {event.status} event to {status}")
        event.status = status
        data = {"event_id": event.id, "event_title": event.title}
        outbox.notify(
            event.organizer_id,
            type="event",
            title=title,
            message=f'Your event "{event.title}" has been {status}',
            data=data,
            priority=priority,
        )
        outbox.email(f"event_{status}", [event.organizer_email], data)
    outbox.flush()
    logger.info("Event %s is now %s", event_id, status)
    return event


def approve_event(db: Session, event_id: int) -> Event:
    return _set_status(
        db,
        event_id,
        EventStatus.APPROVED.value,
        {EventStatus.PENDING.value, EventStatus.REJECTED.value},
        "Event Approved",
        "high",
    )


def reject_event(db: Session, event_id: int) -> Event:
    return _set_status(
        db,
        event_id,
        EventStatus.REJECTED.value,
        {EventStatus.PENDING.value, EventStatus.APPROVED.value},
        "Event Rejected",
        "high",
    )


def update_event(db: Session, event_id: int, changes: dict) -> Event:
    """
    Apply organizer edits. Growing max_seats promotes one waitlisted
    registration per newly free seat.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")
    cleared = {field for field, value in changes.items() if value is None} - NULLABLE_FIELDS
    if cleared:
        raise ValidationError(f"Cannot clear: {', '.join(sorted(cleared))}")

    outbox = Outbox()
    with event_lock(event_id), unit_of_work(db):
        event = get_event_for_update(db, event_id)
        resync_event_counts(db, event)

        max_seats = changes.get("max_seats")
        if max_seats is not None and max_seats < event.current_booked:
            raise ValidationError(
                f"max_seats cannot drop below the {event.current_booked} seat(s) already approved"
            )
        for field, value in changes.items():
            setattr(event, field, value)
        db.flush()

        if event.waitlist_enabled:
            promoted = promote_for_vacancies(db, event, outbox)
            if promoted:
                logger.info("Promoted %d registration(s) after updating event %s", len(promoted), event.id)
    outbox.flush()
    return event


def cancel_event(db: Session, event_id: int) -> tuple[Event, int]:
    """Cancel the event and every active registration. Returns (event, cancelled count)."""
    outbox = Outbox()
    with event_lock(event_id), unit_of_work(db):
        event = get_event_for_update(db, event_id)
        if event.status == EventStatus.CANCELLED.value:
            raise InvalidTransitionError("Event is already cancelled")

        registrations = list(
            db.scalars(
                select(Registration).where(
                    Registration.event_id == event.id,
                    Registration.status.in_(ACTIVE_STATUSES),
                )
            )
        )
        event.status = EventStatus.CANCELLED.value
        db.execute(
            update(Registration)
            .where(Registration.event_id == event.id, Registration.status.in_(ACTIVE_STATUSES))
            .values(
                status=RegistrationStatus.CANCELLED.value,
                waitlist_position=None,
                ics_ticket=None,
                qr_token=None,
            )
            .execution_options(synchronize_session="fetch")
        )
        resync_event_counts(db, event)
        release_venue(db, event.id)

        data = {"event_id": event.id, "event_title": event.title}
        for registration in registrations:
            outbox.notify(
                registration.participant_id,
                type="event",
                title="Event Cancelled",
                message=f'The event "{event.title}" has been cancelled',
                data=data,
                priority="high",
            )
        outbox.email("event_cancelled", [r.participant_email for r in registrations], data)
        cancelled = len(registrations)

    outbox.flush()
    logger.info("Event %s cancelled, %d registration(s) cancelled", event_id, cancelled)
    return event, cancelled


def delete_event(db: Session, event_id: int) -> None:
    with event_lock(event_id), unit_of_work(db):
        event = get_event_for_update(db, event_id)
        count = db.scalar(select(func.count(Registration.id)).where(Registration.event_id == event.id))
        if count:
            raise ValidationError("Cannot delete event with registrations. Cancel the event instead.")
        release_venue(db, event.id)
        db.delete(event)
    logger.info("Event %s deleted", event_id)


def get_event_stats(db: Session, event_id: int) -> dict:
    event = db.get(Event, event_id)
    if not event:
        return {}

    counts = registration_counts(db, event_id)
    return {
        "event_id": event.id,
        "status": event.status,
        "max_seats": event.max_seats,
        "current_booked": event.current_booked,
        "seats_available": event.seats_available,
        "current_waitlisted": event.current_waitlisted,
        "counts": counts,
    }


def get_overall_report(db: Session, organizer_id: Optional[int] = None) -> dict:
    """Return aggregated totals across all events."""
    event_filter = [] if organizer_id is None else [Event.organizer_id == organizer_id]

    total_events = db.scalar(select(func.count(Event.id)).where(*event_filter))
    total_seats = db.scalar(select(func.sum(Event.max_seats)).where(*event_filter))
    total_booked = db.scalar(select(func.sum(Event.current_booked)).where(*event_filter))
    total_waitlisted = db.scalar(select(func.sum(Event.current_waitlisted)).where(*event_filter))

    total_attended = db.scalar(
        select(func.count(Registration.id))
        .join(Event, Registration.event_id == Event.id)
        .where(Registration.attended.is_(True), *event_filter)
    )

    return {
        "total_events": int(total_events or 0),
        "total_seats": int(total_seats or 0),
        "total_booked": int(total_booked or 0),
        "total_waitlisted": int(total_waitlisted or 0),
        "total_attended": int(total_attended or 0),
    }
