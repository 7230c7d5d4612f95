"""Reminder bundle endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from followup.database import get_db
from followup.models.bundle import ReminderBundle as ReminderBundleModel
from followup.models.reminder import Reminder as ReminderModel
from followup.schemas.reminder import ConflictResult, ReminderBundle
from followup.services.bundling import BundlingService

router = APIRouter(prefix="/api/v1/bundles", tags=["bundles"])


@router.get("/", response_model=list[ReminderBundle])
def list_bundles(
    user_id: int = Query(..., description="User ID to list bundles for"),
    delivered: bool | None = None,
    limit: int = 50,
    db: Session = Depends(get_db),
) -> list[ReminderBundleModel]:
    query = db.query(ReminderBundleModel).filter(ReminderBundleModel.user_id == user_id)
    if delivered is not None:
        query = query.filter(ReminderBundleModel.delivered.is_(delivered))
    return query.order_by(ReminderBundleModel.bundle_time.desc()).limit(limit).all()


@router.get("/{bundle_id}", response_model=ReminderBundle)
def get_bundle(bundle_id: int, db: Session = Depends(get_db)) -> ReminderBundleModel:
    bundle = db.get(ReminderBundleModel, bundle_id)
    if not bundle:
        raise HTTPException(status_code=404, detail="Bundle not found")
    return bundle


@router.get("/{bundle_id}/message")
def preview_bundle_message(bundle_id: int, db: Session = Depends(get_db)) -> dict:
    """Render the bundle text in its delivery format without delivering it."""
    bundle = db.get(ReminderBundleModel, bundle_id)
    if not bundle:
        raise HTTPException(status_code=404, detail="Bundle not found")
    message = BundlingService(db).format_bundle_message(
        bundle.reminder_ids, bundle.delivery_format
    )
    return {"bundle_id": bundle.id, "delivery_format": bundle.delivery_format, "message": message}


@router.post("/check", response_model=ConflictResult)
def check_conflicts(
    reminder_id: int = Query(..., description="Reminder to check for time conflicts"),
    db: Session = Depends(get_db),
) -> ConflictResult:
    """Bundle a reminder with any pending reminders inside the user's window."""
    reminder = db.get(ReminderModel, reminder_id)
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return BundlingService(db).check_and_handle_conflicts(
        reminder.user_id, reminder.id, reminder.scheduled_time
    )
