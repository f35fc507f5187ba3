"""
Test event administration and reporting.
"""
import datetime as dt

import pytest
from sqlalchemy.orm import Session

from campus_events import tasks
from campus_events.models.events import Event, EventStatus
from campus_events.models.registrations import Registration, RegistrationStatus
from campus_events.models.venues import VenueSlot
from campus_events.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    VenueUnavailableError,
)
from campus_events.services.events import (
    approve_event,
    cancel_event,
    create_event,
    delete_event,
    get_event_stats,
    get_overall_report,
    reject_event,
    update_event,
)
from campus_events.services.registrations import create_registration

DAY = dt.date(2030, 5, 17)


def event_data(**overrides) -> dict:
    data = {
        "title": "Spring Fest",
        "description": "",
        "category": "cultural",
        "organizer_id": 50,
        "organizer_email": "fest@example.edu",
        "date": DAY,
        "start_time": "4:00 PM",
        "end_time": "9:00 PM",
        "location": "",
        "venue_id": None,
        "max_seats": 10,
        "waitlist_enabled": True,
        "max_waitlist": 0,
        "registration_deadline": None,
        "auto_approve_registrations": True,
    }
    data.update(overrides)
    return data


class TestCreateEvent:
    def test_without_venue(self, db_session: Session):
        event = create_event(db_session, event_data())
        assert event.status == EventStatus.PENDING.value
        assert event.seats_available == 10

    def test_without_venue_needs_seats(self, db_session: Session):
        with pytest.raises(ValidationError):
            create_event(db_session, event_data(max_seats=None))

    def test_with_venue_defaults(self, db_session: Session, make_venue):
        venue = make_venue(capacity=80)
        event = create_event(db_session, event_data(venue_id=venue.id, max_seats=None))

        assert event.max_seats == 80
        assert event.venue_capacity == 80
        assert event.location == venue.name
        slot = db_session.query(VenueSlot).one()
        assert slot.booked_by_event_id == event.id

    def test_venue_clash_rolls_back(self, db_session: Session, make_venue):
        venue = make_venue()
        create_event(db_session, event_data(venue_id=venue.id))
        with pytest.raises(VenueUnavailableError):
            create_event(db_session, event_data(venue_id=venue.id, title="Clash", start_time="8:00 PM", end_time="10:00 PM"))
        assert db_session.query(Event).count() == 1

    def test_unknown_venue(self, db_session: Session):
        with pytest.raises(NotFoundError):
            create_event(db_session, event_data(venue_id=404))


class TestEventStatus:
    def test_approve_and_reject(self, db_session: Session, dispatched):
        event = create_event(db_session, event_data())

        approved = approve_event(db_session, event.id)
        assert approved.status == EventStatus.APPROVED.value
        emails = [c.args[1] for c in dispatched.call_args_list if c.args[0] is tasks.send_email_task]
        assert emails == ["event_approved"]

        assert reject_event(db_session, event.id).status == EventStatus.REJECTED.value
        assert approve_event(db_session, event.id).status == EventStatus.APPROVED.value

    def test_cannot_reject_cancelled(self, db_session: Session, make_event):
        event = make_event(status=EventStatus.CANCELLED.value)
        with pytest.raises(InvalidTransitionError):
            reject_event(db_session, event.id)


class TestUpdateEvent:
    def test_growing_capacity_promotes(self, db_session: Session, make_event, positions, dispatched):
        event = make_event(max_seats=1, auto_approve_registrations=True)
        for pid in (1, 2, 3, 4):
            create_registration(db_session, event_id=event.id, participant_id=pid, participant_email=f"p{pid}@x.edu")
        dispatched.reset_mock()

        updated = update_event(db_session, event.id, {"max_seats": 3})

        assert updated.current_booked == 3
        assert updated.current_waitlisted == 1
        assert positions(db_session, event.id) == [1]
        promoted = [
            c.args[2][0] for c in dispatched.call_args_list
            if c.args[0] is tasks.send_email_task and c.args[1] == "waitlist_promoted"
        ]
        assert promoted == ["p2@x.edu", "p3@x.edu"]

    def test_cannot_shrink_below_bookings(self, db_session: Session, make_event):
        event = make_event(max_seats=2, auto_approve_registrations=True)
        create_registration(db_session, event_id=event.id, participant_id=1)
        create_registration(db_session, event_id=event.id, participant_id=2)
        with pytest.raises(ValidationError):
            update_event(db_session, event.id, {"max_seats": 1})
        db_session.refresh(event)
        assert event.max_seats == 2

    def test_unknown_field(self, db_session: Session, make_event):
        event = make_event()
        with pytest.raises(ValidationError):
            update_event(db_session, event.id, {"current_booked": 0})

    def test_plain_edit(self, db_session: Session, make_event):
        event = make_event()
        assert update_event(db_session, event.id, {"title": "Renamed"}).title == "Renamed"

    @pytest.mark.parametrize("field", ["title", "max_seats", "waitlist_enabled"])
    def test_null_for_required_field(self, db_session: Session, make_event, field):
        event = make_event()
        with pytest.raises(ValidationError, match=field):
            update_event(db_session, event.id, {field: None})
        db_session.refresh(event)
        assert getattr(event, field) is not None

    def test_clear_deadline(self, db_session: Session, make_event):
        event = make_event(registration_deadline=dt.datetime(2030, 5, 10, 12, 0))
        assert update_event(db_session, event.id, {"registration_deadline": None}).registration_deadline is None


class TestCancelAndDelete:
    def test_cancel_cascades(self, db_session: Session, make_event, make_venue, dispatched):
        venue = make_venue()
        event = create_event(db_session, event_data(venue_id=venue.id, max_seats=1))
        approve_event(db_session, event.id)
        for pid in (1, 2, 3):
            create_registration(db_session, event_id=event.id, participant_id=pid, participant_email=f"p{pid}@x.edu")
        dispatched.reset_mock()

        cancelled_event, cancelled = cancel_event(db_session, event.id)

        assert cancelled == 3
        assert cancelled_event.status == EventStatus.CANCELLED.value
        assert cancelled_event.current_booked == 0
        assert cancelled_event.current_waitlisted == 0
        registrations = db_session.query(Registration).filter(Registration.event_id == event.id).all()
        assert {r.status for r in registrations} == {RegistrationStatus.CANCELLED.value}
        assert all(r.waitlist_position is None and r.qr_token is None for r in registrations)
        assert db_session.query(VenueSlot).count() == 0

        notified = sorted(c.args[1] for c in dispatched.call_args_list if c.args[0] is tasks.send_notification_task)
        assert notified == [1, 2, 3]

        with pytest.raises(InvalidTransitionError):
            cancel_event(db_session, event.id)

    def test_delete_requires_no_registrations(self, db_session: Session, make_event):
        event = make_event()
        create_registration(db_session, event_id=event.id, participant_id=1)
        with pytest.raises(ValidationError):
            delete_event(db_session, event.id)

    def test_delete_releases_venue(self, db_session: Session, make_venue):
        venue = make_venue()
        event = create_event(db_session, event_data(venue_id=venue.id))
        event_id = event.id
        delete_event(db_session, event_id)
        assert db_session.get(Event, event_id) is None
        assert db_session.query(VenueSlot).count() == 0


class TestReports:
    def test_event_stats(self, db_session: Session, make_event):
        event = make_event(max_seats=1, auto_approve_registrations=True)
        create_registration(db_session, event_id=event.id, participant_id=1)
        create_registration(db_session, event_id=event.id, participant_id=2)

        stats = get_event_stats(db_session, event.id)

        assert stats["current_booked"] == 1
        assert stats["seats_available"] == 0
        assert stats["current_waitlisted"] == 1
        assert stats["counts"]["waitlisted"] == 1
        assert get_event_stats(db_session, 404) == {}

    def test_overall_report(self, db_session: Session, make_event):
        first = make_event(max_seats=3, auto_approve_registrations=True, organizer_id=1)
        make_event(max_seats=5, organizer_id=2)
        create_registration(db_session, event_id=first.id, participant_id=1)

        assert get_overall_report(db_session) == {
            "total_events": 2,
            "total_seats": 8,
            "total_booked": 1,
            "total_waitlisted": 0,
            "total_attended": 0,
        }
        assert get_overall_report(db_session, organizer_id=2)["total_seats"] == 5
        assert get_overall_report(db_session, organizer_id=3)["total_events"] == 0
