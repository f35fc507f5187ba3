import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base

if TYPE_CHECKING:
    from campus_events.models.events import Event


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    WAITLIST = "waitlist"


# Statuses a registration may still leave
ACTIVE_STATUSES = {
    RegistrationStatus.PENDING.value,
    RegistrationStatus.APPROVED.value,
    RegistrationStatus.WAITLIST.value,
}


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "participant_id", name="uq_registrations_event_participant"),
        CheckConstraint(
            "waitlist_position IS NULL OR waitlist_position >= 1",
            name="ck_registrations_position_positive",
        ),
        Index("ix_registrations_event_status", "event_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)
    participant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    participant_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RegistrationStatus.PENDING.value)
    waitlist_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    ics_ticket: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    qr_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ticket_error: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    attended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    check_in_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    additional_info: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    registered_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    event: Mapped["Event"] = relationship(back_populates="registrations")

    @property
    def has_ticket(self) -> bool:
        return bool(self.ics_ticket and self.qr_token)

    def clear_ticket(self) -> None:
        self.ics_ticket = None
        self.qr_token = None
        self.ticket_error = None

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event_id={self.event_id}, participant_id={self.participant_id}, "
            f"status={self.status}, position={self.waitlist_position})>"
        )
