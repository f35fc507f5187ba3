from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from campus_events.database.db import get_db
from campus_events.routes.common import http_error
from campus_events.schemas.registrations import (
    CancelRequest,
    CheckInRequest,
    QRCodeOut,
    RegisterRequest,
    RegistrationOut,
    RegistrationResult,
    WaitlistPositionOut,
)
from campus_events.services import registrations as registration_service
from campus_events.services.errors import CampusEventsError
from campus_events.services.events import get_event
from campus_events.services.ledger import registration_counts
from campus_events.services.tickets import render_qr_png, ticket_filename
from campus_events.services.waitlist import waitlist_snapshot

router = APIRouter(prefix="/registrations", tags=["registrations"])


def _result(db: Session, registration) -> dict:
    return {
        "registration": registration,
        "counts": registration_counts(db, registration.event_id),
        "waitlist_position": registration.waitlist_position,
    }


@router.post("", response_model=RegistrationResult, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        registration = registration_service.create_registration(
            db,
            event_id=payload.event_id,
            participant_id=payload.participant_id,
            participant_email=payload.participant_email,
            additional_info=payload.additional_info,
        )
    except CampusEventsError as e:
        raise http_error(e)
    return _result(db, registration)


@router.get("/participant/{participant_id}", response_model=list[RegistrationOut])
def participant_registrations(participant_id: int, db: Session = Depends(get_db)):
    return registration_service.list_participant_registrations(db, participant_id)


@router.get("/event/{event_id}", response_model=list[RegistrationOut])
def event_registrations(event_id: int, status: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        return registration_service.list_event_registrations(db, event_id, status)
    except CampusEventsError as e:
        raise http_error(e)


@router.get("/event/{event_id}/waitlist", response_model=list[RegistrationOut])
def event_waitlist(event_id: int, db: Session = Depends(get_db)):
    """Waitlisted registrations in promotion order."""
    try:
        get_event(db, event_id)
    except CampusEventsError as e:
        raise http_error(e)
    return waitlist_snapshot(db, event_id)


@router.get("/event/{event_id}/waitlist-position", response_model=WaitlistPositionOut)
def waitlist_position(event_id: int, participant_id: int, db: Session = Depends(get_db)):
    try:
        registration = registration_service.get_waitlist_position(db, event_id, participant_id)
    except CampusEventsError as e:
        raise http_error(e)
    return {
        "registration_id": registration.id,
        "waitlist_position": registration.waitlist_position,
        "registered_on": registration.registered_on,
    }


@router.patch("/{registration_id}/approve", response_model=RegistrationResult)
def approve(registration_id: int, db: Session = Depends(get_db)):
    try:
        registration = registration_service.approve_registration(db, registration_id)
    except CampusEventsError as e:
        raise http_error(e)
    return _result(db, registration)


@router.patch("/{registration_id}/reject", response_model=RegistrationResult)
def reject(registration_id: int, db: Session = Depends(get_db)):
    try:
        registration = registration_service.reject_registration(db, registration_id)
    except CampusEventsError as e:
        raise http_error(e)
    return _result(db, registration)


@router.post("/{registration_id}/cancel", response_model=RegistrationResult)
def cancel(registration_id: int, payload: Optional[CancelRequest] = None, db: Session = Depends(get_db)):
    participant_id = payload.participant_id if payload else None
    try:
        registration = registration_service.cancel_registration(db, registration_id, participant_id)
    except CampusEventsError as e:
        raise http_error(e)
    return _result(db, registration)


@router.get("/{registration_id}/ticket")
def download_ticket(registration_id: int, participant_id: Optional[int] = None, db: Session = Depends(get_db)):
    try:
        registration = registration_service.get_ticket(db, registration_id, participant_id)
    except CampusEventsError as e:
        raise http_error(e)
    filename = ticket_filename(registration.event)
    return Response(
        content=registration.ics_ticket,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{registration_id}/qr", response_model=QRCodeOut)
def registration_qr(registration_id: int, participant_id: Optional[int] = None, db: Session = Depends(get_db)):
    try:
        registration = registration_service.get_ticket(db, registration_id, participant_id)
    except CampusEventsError as e:
        raise http_error(e)
    return {
        "registration_id": registration.id,
        "event_id": registration.event_id,
        "token": registration.qr_token,
        "qr_code": render_qr_png(registration.qr_token),
    }


@router.post("/check-in", response_model=RegistrationOut)
def check_in(payload: CheckInRequest, db: Session = Depends(get_db)):
    try:
        return registration_service.check_in(db, payload.token)
    except CampusEventsError as e:
        raise http_error(e)
