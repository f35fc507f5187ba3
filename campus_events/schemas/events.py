from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from campus_events.core.timeutils import parse_time_of_day

CATEGORIES = ("technical", "cultural", "sports", "workshop", "seminar", "competition", "other")


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is not None and parse_time_of_day(value) is None:
        raise ValueError("time must look like '10:00 AM' or '14:30'")
    return value


def _check_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in CATEGORIES:
        raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
    return value


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: str = "other"
    organizer_id: int = Field(ge=1)
    organizer_email: Optional[str] = None
    date: date
    start_time: str
    end_time: str
    location: str = ""
    venue_id: Optional[int] = Field(default=None, ge=1)
    max_seats: Optional[int] = Field(default=None, ge=1)
    waitlist_enabled: bool = False
    max_waitlist: int = Field(default=0, ge=0)
    registration_deadline: Optional[datetime] = None
    auto_approve_registrations: bool = False

    check_times = field_validator("start_time", "end_time")(_check_time)
    check_category = field_validator("category")(_check_category)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    max_seats: Optional[int] = Field(default=None, ge=1)
    waitlist_enabled: Optional[bool] = None
    max_waitlist: Optional[int] = Field(default=None, ge=0)
    registration_deadline: Optional[datetime] = None
    auto_approve_registrations: Optional[bool] = None

    check_category = field_validator("category")(_check_category)

    # Omitted means "leave as is"; only the deadline can be cleared
    @field_validator(
        "title",
        "description",
        "category",
        "max_seats",
        "waitlist_enabled",
        "max_waitlist",
        "auto_approve_registrations",
        mode="before",
    )
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    category: str
    organizer_id: int
    date: date
    start_time: str
    end_time: str
    location: str
    venue_id: Optional[int] = None
    status: str
    max_seats: int
    current_booked: int
    seats_available: int
    waitlist_enabled: bool
    max_waitlist: int
    current_waitlisted: int
    registration_deadline: Optional[datetime] = None
    auto_approve_registrations: bool

    class Config:
        from_attributes = True


class RegistrationCounts(BaseModel):
    approved: int
    pending: int
    waitlisted: int
    rejected: int
    cancelled: int


class EventStatsOut(BaseModel):
    event_id: int
    status: str
    max_seats: int
    current_booked: int
    seats_available: int
    current_waitlisted: int
    counts: RegistrationCounts


class EventCancelOut(BaseModel):
    event: EventOut
    cancelled_registrations: int
