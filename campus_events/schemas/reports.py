from pydantic import BaseModel


class ReportOut(BaseModel):
    total_events: int
    total_seats: int
    total_booked: int
    total_waitlisted: int
    total_attended: int

    class Config:
        from_attributes = True
