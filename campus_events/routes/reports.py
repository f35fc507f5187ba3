from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_events.database.db import get_db
from campus_events.schemas.events import EventStatsOut
from campus_events.schemas.reports import ReportOut
from campus_events.services.events import get_event_stats, get_overall_report

router = APIRouter(prefix="/report", tags=["reports"])


@router.get("", response_model=ReportOut)
def overall_report(organizer_id: Optional[int] = None, db: Session = Depends(get_db)):
    """Aggregate report across all events, optionally for one organizer."""
    return get_overall_report(db, organizer_id=organizer_id)


@router.get("/event/{event_id}", response_model=EventStatsOut)
def event_report(event_id: int, db: Session = Depends(get_db)):
    stats = get_event_stats(db, event_id)
    if not stats:
        raise HTTPException(status_code=404, detail="Event not found")
    return stats
