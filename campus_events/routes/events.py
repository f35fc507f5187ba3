from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from campus_events.database.db import get_db
from campus_events.routes.common import http_error
from campus_events.schemas.events import EventCancelOut, EventCreate, EventOut, EventStatsOut, EventUpdate
from campus_events.schemas.registrations import SeatsOut
from campus_events.services import events as event_service
from campus_events.services.errors import CampusEventsError
from campus_events.services.registrations import get_event_seats

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    try:
        return event_service.create_event(db, payload.model_dump())
    except CampusEventsError as e:
        raise http_error(e)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    try:
        return event_service.get_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(event_id: int, payload: EventUpdate, db: Session = Depends(get_db)):
    try:
        return event_service.update_event(db, event_id, payload.model_dump(exclude_unset=True))
    except CampusEventsError as e:
        raise http_error(e)


@router.patch("/{event_id}/approve", response_model=EventOut)
def approve_event(event_id: int, db: Session = Depends(get_db)):
    try:
        return event_service.approve_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)


@router.patch("/{event_id}/reject", response_model=EventOut)
def reject_event(event_id: int, db: Session = Depends(get_db)):
    try:
        return event_service.reject_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)


@router.post("/{event_id}/cancel", response_model=EventCancelOut)
def cancel_event(event_id: int, db: Session = Depends(get_db)):
    try:
        event, cancelled = event_service.cancel_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)
    return {"event": event, "cancelled_registrations": cancelled}


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: int, db: Session = Depends(get_db)):
    try:
        event_service.delete_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)
    return Response(status_code=204)


@router.get("/{event_id}/stats", response_model=EventStatsOut)
def event_stats(event_id: int, db: Session = Depends(get_db)):
    stats = event_service.get_event_stats(db, event_id)
    if not stats:
        raise HTTPException(status_code=404, detail="Event not found")
    return stats


@router.get("/{event_id}/seats", response_model=SeatsOut)
def event_seats(event_id: int, db: Session = Depends(get_db)):
    try:
        return get_event_seats(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)
