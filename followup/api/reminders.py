"""Reminder API endpoints."""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.clock import to_naive_utc, utcnow
from followup.database import get_db
from followup.models.contact import Contact as ContactModel
from followup.models.reminder import ACTIVE_STATUSES, ReminderStatus
from followup.models.reminder import Reminder as ReminderModel
from followup.models.snooze_history import SnoozeReason
from followup.schemas.reminder import (
    DispatchResult,
    Reminder,
    ReminderAudit,
    ReminderCreate,
    ReminderSnoozeRequest,
    ReminderUpdate,
    SuppressionDecision,
)
from followup.services.audit import reminder_audit
from followup.services.dispatcher import ReminderDispatcher
from followup.services.notifications import NotificationService, get_notification_service
from followup.services.popups import PopupEngine
from followup.services.reminders import ReminderService
from followup.services.scheduling import ReminderScheduler, get_scheduler
from followup.services.suppression import SuppressionEngine

router = APIRouter(prefix="/api/v1/reminders", tags=["reminders"])


def get_reminder_or_404(db: Session, reminder_id: int) -> ReminderModel:
    reminder = db.get(ReminderModel, reminder_id)
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.post("/", response_model=Reminder, status_code=201)
def create_reminder(
    reminder: ReminderCreate,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ReminderModel:
    """Create a reminder and schedule its first delivery attempt."""
    get_user_or_404(db, reminder.user_id)
    if reminder.contact_id is not None:
        contact = db.get(ContactModel, reminder.contact_id)
        if not contact or contact.user_id != reminder.user_id:
            raise HTTPException(status_code=404, detail="Contact not found")

    return ReminderService(db, scheduler).create(reminder)


@router.get("/", response_model=list[Reminder])
def list_reminders(
    user_id: int | None = None,
    status: str | None = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
) -> list[ReminderModel]:
    """List reminders with optional filtering."""
    query = db.query(ReminderModel)

    if user_id:
        query = query.filter(ReminderModel.user_id == user_id)
    if status:
        query = query.filter(ReminderModel.status == status)

    return query.order_by(ReminderModel.scheduled_time.desc()).offset(skip).limit(limit).all()


@router.get("/upcoming", response_model=list[Reminder])
def get_upcoming_reminders(
    user_id: int = Query(..., description="User ID to get upcoming reminders for"),
    limit: int = Query(10, description="Maximum number of reminders to return"),
    db: Session = Depends(get_db),
) -> list[ReminderModel]:
    """Get active reminders that have not fired yet."""
    return (
        db.query(ReminderModel)
        .filter(
            ReminderModel.user_id == user_id,
            ReminderModel.status.in_(ACTIVE_STATUSES),
            ReminderModel.scheduled_time > utcnow(),
        )
        .order_by(ReminderModel.scheduled_time.asc())
        .limit(limit)
        .all()
    )


@router.get("/{reminder_id}", response_model=Reminder)
def get_reminder(reminder_id: int, db: Session = Depends(get_db)) -> ReminderModel:
    """Get a reminder by ID."""
    return get_reminder_or_404(db, reminder_id)


@router.patch("/{reminder_id}", response_model=Reminder)
def update_reminder(
    reminder_id: int,
    reminder_update: ReminderUpdate,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ReminderModel:
    """Update a reminder. A new scheduled_time is handed to the scheduler."""
    reminder = get_reminder_or_404(db, reminder_id)

    update_data = reminder_update.model_dump(exclude_unset=True)
    if update_data.get("scheduled_time") is not None:
        update_data["scheduled_time"] = to_naive_utc(update_data["scheduled_time"])
    for field, value in update_data.items():
        setattr(reminder, field, value)

    db.commit()
    db.refresh(reminder)

    if "scheduled_time" in update_data and reminder.is_active:
        ReminderService(db, scheduler).schedule(reminder.id, reminder.scheduled_time)
    return reminder


@router.get("/{reminder_id}/evaluate", response_model=SuppressionDecision)
def evaluate_reminder(
    reminder_id: int,
    at: datetime | None = Query(None, description="Instant to evaluate; defaults to due time"),
    db: Session = Depends(get_db),
) -> SuppressionDecision:
    """Dry-run the suppression policy for a reminder without logging."""
    reminder = get_reminder_or_404(db, reminder_id)
    return SuppressionEngine(db).evaluate(
        reminder.user_id, reminder.id, at or reminder.scheduled_time, log=False
    )


@router.get("/{reminder_id}/audit", response_model=ReminderAudit)
def audit_reminder(
    reminder_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> ReminderAudit:
    """Timeline of what happened to a reminder and why it was held back."""
    reminder = get_reminder_or_404(db, reminder_id)
    return reminder_audit(db, reminder, limit=limit)


@router.post("/{reminder_id}/fire", response_model=DispatchResult)
async def fire_reminder(
    reminder_id: int,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> DispatchResult:
    """Run the scheduler callback for a reminder now."""
    get_reminder_or_404(db, reminder_id)
    return await ReminderDispatcher(db, notifier, scheduler).dispatch(reminder_id)


@router.post("/{reminder_id}/snooze", response_model=Reminder)
def snooze_reminder(
    reminder_id: int,
    request: ReminderSnoozeRequest,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ReminderModel:
    """Snooze a reminder by explicit minutes, or by the computed default."""
    reminder = get_reminder_or_404(db, reminder_id)
    service = ReminderService(db, scheduler)
    now = utcnow()

    if request.minutes is not None and not request.use_suggestion:
        minutes, reason = request.minutes, SnoozeReason.USER_ACTION
    else:
        minutes, reason = service.default_snooze_minutes(reminder, now)

    if not service.snooze(reminder, now + timedelta(minutes=minutes), reason, now):
        raise HTTPException(status_code=400, detail="Dismissed reminders cannot be snoozed")
    db.refresh(reminder)
    return reminder


@router.post("/{reminder_id}/complete", response_model=Reminder)
def complete_reminder(
    reminder_id: int,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ReminderModel:
    """Mark a reminder done, update the streak and queue any popups."""
    reminder = get_reminder_or_404(db, reminder_id)
    if reminder.status == ReminderStatus.DISMISSED.value:
        raise HTTPException(status_code=400, detail="Reminder was dismissed")

    engine = PopupEngine(db, scheduler=scheduler)
    completed = engine.reminders.complete(reminder)
    engine.after_completion(completed)
    db.refresh(reminder)
    return reminder


@router.post("/{reminder_id}/dismiss", response_model=Reminder)
def dismiss_reminder(
    reminder_id: int,
    db: Session = Depends(get_db),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ReminderModel:
    """Dismiss a reminder. It will not fire again."""
    reminder = get_reminder_or_404(db, reminder_id)
    ReminderService(db, scheduler).dismiss(reminder)
    db.refresh(reminder)
    return reminder
