import enum
import datetime as dt
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base

if TYPE_CHECKING:
    from campus_events.models.events import Event


class VenueStatus(str, enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    MAINTENANCE = "maintenance"


class Venue(Base):
    __tablename__ = "venues"
    __table_args__ = (CheckConstraint("capacity >= 1", name="ck_venues_capacity_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=VenueStatus.AVAILABLE.value)

    slots: Mapped[list["VenueSlot"]] = relationship(
        back_populates="venue", cascade="all, delete-orphan", order_by="VenueSlot.date"
    )
    events: Mapped[list["Event"]] = relationship(back_populates="venue")


class VenueSlot(Base):
    __tablename__ = "venue_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(16), nullable=False)
    end_time: Mapped[str] = mapped_column(String(16), nullable=False)
    is_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    booked_by_event_id: Mapped[Optional[int]] = mapped_column(ForeignKey("events.id"), nullable=True)

    venue: Mapped["Venue"] = relationship(back_populates="slots")
