import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from io import BytesIO
from typing import Optional

import jwt
import qrcode
from ics import Calendar
from ics import Event as ICSEvent

from campus_events.core.config import FRONTEND_URL, SECRET_KEY, TICKET_DOMAIN
from campus_events.core.timeutils import combine_date_time, utcnow
from campus_events.models.events import Event
from campus_events.models.registrations import Registration
from campus_events.services.errors import InvalidTicketError, TicketIssueError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
TOKEN_TYPE = "checkin"
DEFAULT_DURATION = timedelta(hours=1)
# Tolerated clock drift between the issuing worker and the check-in host
TOKEN_LEEWAY = timedelta(seconds=30)


@dataclass(frozen=True)
class Ticket:
    calendar_payload: str
    checkin_token: str


def event_window(event: Event) -> tuple[datetime, datetime]:
    """Start and end of the event; end falls back to start + 1 hour."""
    start = combine_date_time(event.date, event.start_time)
    if start is None:
        raise TicketIssueError(f"Unparseable start time {event.start_time!r} for event {event.id}")
    end = combine_date_time(event.date, event.end_time)
    if end is None or end <= start:
        end = start + DEFAULT_DURATION
    return start, end


def build_calendar(event: Event, registration: Registration, issued_at: datetime) -> str:
    start, end = event_window(event)
    c = Calendar()
    e = ICSEvent()

    e.name = event.title
    e.begin = start
    e.end = end
    e.created = issued_at  # serialized as DTSTAMP
    e.description = event.description or None
    e.location = event.location or None
    e.url = f"{FRONTEND_URL.rstrip('/')}/events/{event.id}"
    e.uid = f"registration-{registration.id}@{TICKET_DOMAIN}"

    c.events.add(e)
    return c.serialize()


def create_checkin_token(registration: Registration, issued_at: datetime) -> str:
    payload = {
        "sub": str(registration.id),
        "evt": registration.event_id,
        "iat": int(issued_at.timestamp()),
        "typ": TOKEN_TYPE,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=TOKEN_ALGORITHM)


def verify_checkin_token(token: str) -> dict:
    """Return the decoded claims, or raise InvalidTicketError."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[TOKEN_ALGORITHM], leeway=TOKEN_LEEWAY)
    except jwt.PyJWTError:
        raise InvalidTicketError("Invalid check-in token")
    if claims.get("typ") != TOKEN_TYPE or not str(claims.get("sub", "")).isdigit():
        raise InvalidTicketError("Invalid check-in token")
    return claims


def issue_ticket(event: Event, registration: Registration, issued_at: Optional[datetime] = None) -> Ticket:
    """
    Build the calendar file and check-in token for an approved registration.

    Raises TicketIssueError when the event's date or start time is malformed.
    """
    issued_at = issued_at or utcnow()
    calendar = build_calendar(event, registration, issued_at)
    token = create_checkin_token(registration, issued_at)
    return Ticket(calendar_payload=calendar, checkin_token=token)


def apply_ticket(event: Event, registration: Registration) -> bool:
    """
    Best-effort issuance used by the lifecycle.

    Returns False and flags the registration instead of raising, so the
    status transition around it still commits.
    """
    try:
        ticket = issue_ticket(event, registration)
    except Exception as exc:
        logger.warning(
            "Ticket not issued for registration %s: %s",
            registration.id,
            exc,
            exc_info=not isinstance(exc, TicketIssueError),
        )
        registration.ics_ticket = None
        registration.qr_token = None
        registration.ticket_error = str(exc)[:255]
        return False

    registration.ics_ticket = ticket.calendar_payload
    registration.qr_token = ticket.checkin_token
    registration.ticket_error = None
    return True


def render_qr_png(token: str) -> str:
    """Render a token as a base64 PNG data URL."""
    image = qrcode.make(token)
    buffered = BytesIO()
    image.save(buffered, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("utf-8")


def ticket_filename(event: Event) -> str:
    slug = "".join(ch if ch.isalnum() else "_" for ch in event.title.lower())
    return f"{slug}_ticket.ics"
