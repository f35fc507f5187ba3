"""Parsing helpers for the time-of-day strings stored on events and venue slots."""
import re
from datetime import date, datetime, time, timezone
from typing import Optional

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")


def parse_time_of_day(text: Optional[str]) -> Optional[time]:
    """
    Parse "h:mm AM/PM" or 24-hour "HH:mm".

    Returns None for anything malformed or out of range.
    """
    if not text or not isinstance(text, str):
        return None
    match = _TIME_RE.match(text)
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    period = match.group(3)
    if period:
        if hours < 1 or hours > 12:
            return None
        period = period.upper()
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0

    if hours > 23 or minutes > 59:
        return None
    return time(hours, minutes)


def combine_date_time(day, time_text: Optional[str]) -> Optional[datetime]:
    """Combine an event date with a time-of-day string, or None if either is unusable."""
    parsed = parse_time_of_day(time_text)
    if parsed is None:
        return None
    if isinstance(day, datetime):
        day = day.date()
    if not isinstance(day, date):
        return None
    return datetime.combine(day, parsed)


def minutes_of_day(text: Optional[str]) -> Optional[int]:
    parsed = parse_time_of_day(text)
    if parsed is None:
        return None
    return parsed.hour * 60 + parsed.minute


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
