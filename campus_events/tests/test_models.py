"""
Test database models.
"""
import datetime as dt

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.models.events import Event, EventStatus
from campus_events.models.notifications import Notification
from campus_events.models.registrations import Registration, RegistrationStatus

EVENT_DAY = dt.date(2030, 5, 17)


class TestEventModel:
    """Test Event model."""

    def test_defaults(self, db_session: Session):
        event = Event(
            title="Chess Open",
            organizer_id=1,
            date=EVENT_DAY,
            start_time="09:00",
            end_time="17:00",
            max_seats=16,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)

        assert event.status == EventStatus.PENDING.value
        assert event.current_booked == 0
        assert event.current_waitlisted == 0
        assert event.seats_available == 16
        assert event.waitlist_enabled is False
        assert event.is_open is False

    def test_booked_cannot_exceed_max_seats(self, db_session: Session):
        event = Event(
            title="Tiny",
            organizer_id=1,
            date=EVENT_DAY,
            start_time="09:00",
            end_time="10:00",
            max_seats=1,
            current_booked=2,
        )
        db_session.add(event)
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_repr(self, make_event):
        event = make_event(title="Repr Event")
        assert "Repr Event" in repr(event)
        assert "booked=0/2" in repr(event)


class TestRegistrationModel:
    """Test Registration model."""

    def test_unique_event_participant(self, db_session: Session, make_event):
        event = make_event()
        db_session.add(Registration(event_id=event.id, participant_id=7))
        db_session.commit()

        db_session.add(Registration(event_id=event.id, participant_id=7))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_defaults_and_ticket_helpers(self, db_session: Session, make_event):
        event = make_event()
        registration = Registration(event_id=event.id, participant_id=8)
        db_session.add(registration)
        db_session.commit()
        db_session.refresh(registration)

        assert registration.status == RegistrationStatus.PENDING.value
        assert registration.attended is False
        assert registration.additional_info == {}
        assert registration.has_ticket is False

        registration.ics_ticket = "BEGIN:VCALENDAR"
        registration.qr_token = "token"
        registration.ticket_error = "old failure"
        assert registration.has_ticket is True
        registration.clear_ticket()
        assert registration.has_ticket is False
        assert registration.ticket_error is None

    def test_event_relationship(self, db_session: Session, make_event):
        event = make_event()
        db_session.add(Registration(event_id=event.id, participant_id=9))
        db_session.commit()
        db_session.refresh(event)
        assert [r.participant_id for r in event.registrations] == [9]


class TestNotificationModel:
    def test_defaults(self, db_session: Session):
        notification = Notification(user_id=3, type="event", title="Hi", message="Hello")
        db_session.add(notification)
        db_session.commit()
        db_session.refresh(notification)
        assert notification.read is False
        assert notification.priority == "medium"
        assert notification.data == {}
