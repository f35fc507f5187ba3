import datetime as dt
import os
from unittest.mock import Mock

# Keep the app's import-time create_all away from a real database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from campus_events.database.db import Base, get_db
from campus_events.main import app
from campus_events.models.events import Event, EventStatus
from campus_events.models.registrations import Registration
from campus_events.models.venues import Venue

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EVENT_DAY = dt.date(2030, 5, 17)


@pytest.fixture(autouse=True)
def setup_database():
    """Create a fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db_session(session_factory) -> Session:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db: Session = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(fake_redis, monkeypatch: pytest.MonkeyPatch):
    """Point every lock at the fake server."""
    monkeypatch.setattr("campus_events.services.locking.get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture(autouse=True)
def dispatched(monkeypatch: pytest.MonkeyPatch) -> Mock:
    """Capture Celery dispatches instead of talking to a broker."""
    dispatch = Mock()
    monkeypatch.setattr("campus_events.services.notifications._dispatch", dispatch)
    return dispatch


@pytest.fixture
def make_event(db_session: Session):
    def _make_event(**overrides) -> Event:
        fields = {
            "title": "Robotics Workshop",
            "description": "Build a line follower",
            "category": "workshop",
            "location": "Lab 3",
            "organizer_id": 900,
            "organizer_email": "organizer@example.edu",
            "date": EVENT_DAY,
            "start_time": "10:00 AM",
            "end_time": "12:00 PM",
            "status": EventStatus.APPROVED.value,
            "max_seats": 2,
            "waitlist_enabled": True,
            "max_waitlist": 0,
            "auto_approve_registrations": False,
        }
        fields.update(overrides)
        event = Event(**fields)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def make_venue(db_session: Session):
    def _make_venue(**overrides) -> Venue:
        fields = {"name": "Main Auditorium", "location": "Block A", "capacity": 3}
        fields.update(overrides)
        venue = Venue(**fields)
        db_session.add(venue)
        db_session.commit()
        db_session.refresh(venue)
        return venue

    return _make_venue


def waitlist_positions(db: Session, event_id: int) -> list[int]:
    db.expire_all()
    rows = (
        db.query(Registration)
        .filter(Registration.event_id == event_id, Registration.status == "waitlist")
        .order_by(Registration.waitlist_position)
        .all()
    )
    return [r.waitlist_position for r in rows]


@pytest.fixture
def positions():
    return waitlist_positions
