"""Smart snooze endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.database import get_db
from followup.models.snooze_history import SnoozeHistory
from followup.schemas.snooze import (
    SnoozeHistoryEntry,
    SnoozeLogCreate,
    SnoozeRecommendation,
    SnoozeSuggestion,
)
from followup.services.smart_snooze import SmartSnoozeService

router = APIRouter(prefix="/api/v1/snooze", tags=["snooze"])


@router.get("/suggestion", response_model=SnoozeSuggestion | None)
def get_suggestion(
    user_id: int = Query(..., description="User ID to suggest a snooze for"),
    reminder_id: int | None = None,
    db: Session = Depends(get_db),
) -> SnoozeSuggestion | None:
    """Suggested snooze duration, or null when smart suggestions are off."""
    get_user_or_404(db, user_id)
    return SmartSnoozeService(db).suggest(user_id, reminder_id)


@router.get("/suggestions", response_model=SnoozeRecommendation)
def get_suggestions(
    user_id: int = Query(..., description="User ID to suggest snooze times for"),
    reminder_id: int | None = None,
    event_type: str | None = Query(None, description="Event that prompted the snooze"),
    db: Session = Depends(get_db),
) -> SnoozeRecommendation:
    """Scored snooze-until times, best first, with a manual option last."""
    get_user_or_404(db, user_id)
    return SmartSnoozeService(db).recommend(user_id, reminder_id, context_type=event_type)


@router.post("/log", response_model=SnoozeHistoryEntry, status_code=201)
def log_snooze(entry: SnoozeLogCreate, db: Session = Depends(get_db)) -> SnoozeHistory:
    """Record a snooze taken outside the reminder endpoints."""
    get_user_or_404(db, entry.user_id)
    return SmartSnoozeService(db).log_snooze(
        entry.user_id,
        entry.duration_minutes,
        reason=entry.reason,
        reminder_id=entry.reminder_id,
        context=entry.context_data,
    )


@router.get("/history", response_model=list[SnoozeHistoryEntry])
def get_history(
    user_id: int = Query(..., description="User ID to get snooze history for"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[SnoozeHistory]:
    return (
        db.query(SnoozeHistory)
        .filter(SnoozeHistory.user_id == user_id)
        .order_by(SnoozeHistory.created_at.desc(), SnoozeHistory.id.desc())
        .limit(limit)
        .all()
    )
