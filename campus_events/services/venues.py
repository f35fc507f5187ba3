import datetime as dt
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_events.core.timeutils import minutes_of_day
from campus_events.models.events import Event
from campus_events.models.venues import Venue, VenueSlot, VenueStatus
from campus_events.services.errors import NotFoundError, ValidationError, VenueUnavailableError
from campus_events.services.locking import venue_lock
from campus_events.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _time_range(start_time: str, end_time: str) -> tuple[int, int]:
    start, end = minutes_of_day(start_time), minutes_of_day(end_time)
    if start is None or end is None:
        raise ValidationError("Start and end times must look like '10:00 AM' or '14:30'")
    if end <= start:
        raise ValidationError("End time must be after start time")
    return start, end


def get_venue(db: Session, venue_id: int) -> Venue:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise NotFoundError("Venue not found")
    return venue


def create_venue(db: Session, data: dict) -> Venue:
    if db.scalar(select(Venue.id).where(Venue.name == data["name"])) is not None:
        raise ValidationError("Venue with this name already exists")
    venue = Venue(**data)
    with unit_of_work(db):
        db.add(venue)
    db.refresh(venue)
    return venue


def booked_slots(db: Session, venue_id: int, day: dt.date) -> list[VenueSlot]:
    return list(
        db.scalars(
            select(VenueSlot).where(
                VenueSlot.venue_id == venue_id,
                VenueSlot.date == day,
                VenueSlot.is_booked.is_(True),
            )
        )
    )


def slots_overlap(start: int, end: int, slot: VenueSlot) -> bool:
    slot_start, slot_end = minutes_of_day(slot.start_time), minutes_of_day(slot.end_time)
    if slot_start is None or slot_end is None:
        # Unreadable bookings block the whole day
        return True
    return start < slot_end and end > slot_start


def is_available(db: Session, venue: Venue, day: dt.date, start_time: str, end_time: str) -> bool:
    if venue.status != VenueStatus.AVAILABLE.value:
        return False
    start, end = _time_range(start_time, end_time)
    return not any(slots_overlap(start, end, slot) for slot in booked_slots(db, venue.id, day))


def check_availability(db: Session, venue_id: int, day: dt.date, start_time: str, end_time: str) -> bool:
    return is_available(db, get_venue(db, venue_id), day, start_time, end_time)


def reserve_slot(
    db: Session, venue: Venue, day: dt.date, start_time: str, end_time: str, event_id: Optional[int]
) -> VenueSlot:
    """Add a booked slot inside the caller's transaction; the caller holds the venue lock."""
    if not is_available(db, venue, day, start_time, end_time):
        raise VenueUnavailableError()
    slot = VenueSlot(
        venue_id=venue.id,
        date=day,
        start_time=start_time,
        end_time=end_time,
        is_booked=True,
        booked_by_event_id=event_id,
    )
    db.add(slot)
    db.flush()
    logger.info("Venue %s booked on %s %s-%s for event %s", venue.id, day, start_time, end_time, event_id)
    return slot


def book_venue(db: Session, venue_id: int, day: dt.date, start_time: str, end_time: str, event_id: int) -> VenueSlot:
    with venue_lock(venue_id), unit_of_work(db):
        venue = get_venue(db, venue_id)
        event = db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        slot = reserve_slot(db, venue, day, start_time, end_time, event_id)
        event.venue_id = venue.id
        event.venue_capacity = venue.capacity
        event.location = venue.name
    return slot


def release_venue(db: Session, event_id: int) -> int:
    """Free every slot booked by an event inside the caller's transaction."""
    slots = list(db.scalars(select(VenueSlot).where(VenueSlot.booked_by_event_id == event_id)))
    for slot in slots:
        db.delete(slot)
    db.flush()
    if slots:
        logger.info("Released %d venue slot(s) held by event %s", len(slots), event_id)
    return len(slots)


def availability_calendar(db: Session, venue_id: int, start_date: dt.date, end_date: dt.date) -> dict:
    venue = get_venue(db, venue_id)
    if end_date < start_date:
        raise ValidationError("End date must not be before start date")
    slots = db.scalars(
        select(VenueSlot)
        .where(
            VenueSlot.venue_id == venue_id,
            VenueSlot.date >= start_date,
            VenueSlot.date <= end_date,
        )
        .order_by(VenueSlot.date, VenueSlot.id)
    ).all()
    return {"venue": venue, "slots": list(slots)}
