from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.database.db import get_db
from campus_events.routes.common import http_error
from campus_events.schemas.venues import (
    AvailabilityOut,
    CalendarOut,
    VenueBookRequest,
    VenueCreate,
    VenueOut,
    VenueSlotOut,
)
from campus_events.services import venues as venue_service
from campus_events.services.errors import CampusEventsError

router = APIRouter(prefix="/venues", tags=["venues"])


@router.post("", response_model=VenueOut, status_code=201)
def create_venue(payload: VenueCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    data["status"] = payload.status.value
    try:
        return venue_service.create_venue(db, data)
    except CampusEventsError as e:
        raise http_error(e)


@router.get("/{venue_id}/availability", response_model=AvailabilityOut)
def check_availability(
    venue_id: int, date: date, start_time: str, end_time: str, db: Session = Depends(get_db)
):
    try:
        venue = venue_service.get_venue(db, venue_id)
        available = venue_service.is_available(db, venue, date, start_time, end_time)
    except CampusEventsError as e:
        raise http_error(e)
    return {"is_available": available, "venue": venue}


@router.post("/{venue_id}/book", response_model=VenueSlotOut, status_code=201)
def book_venue(venue_id: int, payload: VenueBookRequest, db: Session = Depends(get_db)):
    try:
        return venue_service.book_venue(
            db, venue_id, payload.date, payload.start_time, payload.end_time, payload.event_id
        )
    except CampusEventsError as e:
        raise http_error(e)


@router.get("/{venue_id}/calendar", response_model=CalendarOut)
def availability_calendar(venue_id: int, start_date: date, end_date: date, db: Session = Depends(get_db)):
    try:
        return venue_service.availability_calendar(db, venue_id, start_date, end_date)
    except CampusEventsError as e:
        raise http_error(e)
