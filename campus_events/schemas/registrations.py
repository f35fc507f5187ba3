from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from campus_events.schemas.events import RegistrationCounts


class RegisterRequest(BaseModel):
    event_id: int = Field(ge=1)
    participant_id: int = Field(ge=1)
    participant_email: Optional[str] = None
    additional_info: dict[str, str] = Field(default_factory=dict)


class CancelRequest(BaseModel):
    participant_id: Optional[int] = Field(default=None, ge=1)


class CheckInRequest(BaseModel):
    token: str = Field(min_length=1)


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    participant_id: int
    status: str
    waitlist_position: Optional[int] = None
    has_ticket: bool = False
    ticket_error: Optional[str] = None
    attended: bool
    check_in_time: Optional[datetime] = None
    registered_on: datetime

    class Config:
        from_attributes = True


class RegistrationResult(BaseModel):
    registration: RegistrationOut
    counts: RegistrationCounts
    waitlist_position: Optional[int] = None


class SeatsOut(BaseModel):
    event_id: int
    available_seats: int
    max_seats: int
    booked_seats: int
    waitlisted_count: int
    pending_count: int
    waitlist_enabled: bool
    max_waitlist: int
    can_register: bool
    registration_message: Optional[str] = None
    would_be_waitlisted: bool


class WaitlistPositionOut(BaseModel):
    registration_id: int
    waitlist_position: int
    registered_on: datetime


class QRCodeOut(BaseModel):
    registration_id: int
    event_id: int
    token: str
    qr_code: str
