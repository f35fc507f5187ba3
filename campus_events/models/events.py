import enum
import datetime as dt
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base

# Related mappers must be registered before this one is configured
from campus_events.models.registrations import Registration
from campus_events.models.venues import Venue


class EventStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that accept new registrations
OPEN_STATUSES = {EventStatus.APPROVED.value, EventStatus.ONGOING.value}


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("max_seats >= 1", name="ck_events_max_seats_positive"),
        CheckConstraint("current_booked >= 0", name="ck_events_booked_non_negative"),
        CheckConstraint("current_booked <= max_seats", name="ck_events_booked_lte_max"),
        CheckConstraint("current_waitlisted >= 0", name="ck_events_waitlisted_non_negative"),
        CheckConstraint("max_waitlist >= 0", name="ck_events_max_waitlist_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="other")
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    organizer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    organizer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(16), nullable=False)
    end_time: Mapped[str] = mapped_column(String(16), nullable=False)

    venue_id: Mapped[Optional[int]] = mapped_column(ForeignKey("venues.id"), nullable=True)
    venue_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=EventStatus.PENDING.value)

    max_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    current_booked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waitlist_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_waitlist: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0 means unlimited
    current_waitlisted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registration_deadline: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_approve_registrations: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    registrations: Mapped[list["Registration"]] = relationship(back_populates="event")
    venue: Mapped[Optional["Venue"]] = relationship(back_populates="events")

    @property
    def seats_available(self) -> int:
        return max((self.max_seats or 0) - (self.current_booked or 0), 0)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title!r}, status={self.status}, "
            f"booked={self.current_booked}/{self.max_seats}, waitlisted={self.current_waitlisted})>"
        )
