from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from campus_events.models.venues import VenueStatus


class VenueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    location: str = Field(min_length=1, max_length=200)
    capacity: int = Field(ge=1)
    status: VenueStatus = VenueStatus.AVAILABLE


class VenueOut(BaseModel):
    id: int
    name: str
    location: str
    capacity: int
    status: str

    class Config:
        from_attributes = True


class VenueBookRequest(BaseModel):
    date: date
    start_time: str
    end_time: str
    event_id: int = Field(ge=1)


class VenueSlotOut(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    is_booked: bool
    booked_by_event_id: Optional[int] = None

    class Config:
        from_attributes = True


class AvailabilityOut(BaseModel):
    is_available: bool
    venue: VenueOut


class CalendarOut(BaseModel):
    venue: VenueOut
    slots: list[VenueSlotOut]
