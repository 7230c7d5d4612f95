"""Event log endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.clock import to_naive_utc
from followup.database import get_db
from followup.models.event import Event as EventModel
from followup.models.event import EventType
from followup.schemas.event import Event, EventCreate, EventIngestResult
from followup.services.events import log_event, query_events
from followup.services.popups import PopupEngine
from followup.services.scheduling import ReminderScheduler, get_scheduler

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.post("/", response_model=EventIngestResult, status_code=201)
def ingest_event(
    event_in: EventCreate,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> EventIngestResult:
    """Append an event and run it through the popup triggers."""
    get_user_or_404(db, event_in.user_id)
    try:
        event = log_event(
            db,
            event_in.user_id,
            event_in.event_type,
            event_in.event_data,
            source=event_in.source,
            contact_id=event_in.contact_id,
            reminder_id=event_in.reminder_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    engine = PopupEngine(db, scheduler=scheduler)
    if event_in.event_type == EventType.REMINDER_COMPLETED:
        popups = engine.after_completion(event)
    else:
        popups = engine.feed([event])

    return EventIngestResult(
        event=Event.model_validate(event), popup_ids=[popup.id for popup in popups]
    )


@router.get("/", response_model=list[Event])
def list_events(
    user_id: int = Query(..., description="User ID to list events for"),
    event_type: list[EventType] | None = Query(None),
    since: datetime | None = None,
    until: datetime | None = None,
    reminder_id: int | None = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[EventModel]:
    """List a user's events, newest first."""
    return query_events(
        db,
        user_id,
        event_types=event_type,
        since=to_naive_utc(since) if since else None,
        until=to_naive_utc(until) if until else None,
        reminder_id=reminder_id,
        limit=limit,
    )
