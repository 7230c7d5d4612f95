"""User preference endpoints.

Reads always succeed: a user without a stored row gets the configured
defaults. Writes upsert the row.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.database import get_db
from followup.models.preferences import ReminderCategory
from followup.schemas.preferences import (
    AffirmationPreferencesData,
    AffirmationPreferencesUpdate,
    CategoryPreferenceData,
    CategoryPreferenceUpdate,
    SnoozePreferencesData,
    SnoozePreferencesUpdate,
)
from followup.services.preferences import PreferenceStore

router = APIRouter(prefix="/api/v1/users/{user_id}/preferences", tags=["preferences"])


@router.get("/snooze", response_model=SnoozePreferencesData)
def get_snooze_preferences(user_id: int, db: Session = Depends(get_db)) -> SnoozePreferencesData:
    get_user_or_404(db, user_id)
    return PreferenceStore(db).get_snooze_preferences(user_id)


@router.put("/snooze", response_model=SnoozePreferencesData)
def update_snooze_preferences(
    user_id: int, update: SnoozePreferencesUpdate, db: Session = Depends(get_db)
) -> SnoozePreferencesData:
    get_user_or_404(db, user_id)
    return PreferenceStore(db).update_snooze_preferences(user_id, update)


@router.delete("/snooze", response_model=SnoozePreferencesData)
def reset_snooze_preferences(user_id: int, db: Session = Depends(get_db)) -> SnoozePreferencesData:
    """Drop stored preferences and return the defaults now in effect."""
    get_user_or_404(db, user_id)
    return PreferenceStore(db).reset_snooze_preferences(user_id)


@router.get("/categories", response_model=list[CategoryPreferenceData])
def list_category_preferences(
    user_id: int, db: Session = Depends(get_db)
) -> list[CategoryPreferenceData]:
    get_user_or_404(db, user_id)
    store = PreferenceStore(db)
    return [store.get_category_preference(user_id, category) for category in ReminderCategory]


@router.put("/categories/{category}", response_model=CategoryPreferenceData)
def update_category_preference(
    user_id: int,
    category: ReminderCategory,
    update: CategoryPreferenceUpdate,
    db: Session = Depends(get_db),
) -> CategoryPreferenceData:
    get_user_or_404(db, user_id)
    return PreferenceStore(db).update_category_preference(user_id, category, update)


@router.get("/affirmations", response_model=AffirmationPreferencesData)
def get_affirmation_preferences(
    user_id: int, db: Session = Depends(get_db)
) -> AffirmationPreferencesData:
    get_user_or_404(db, user_id)
    return PreferenceStore(db).get_affirmation_preferences(user_id)


@router.put("/affirmations", response_model=AffirmationPreferencesData)
def update_affirmation_preferences(
    user_id: int, update: AffirmationPreferencesUpdate, db: Session = Depends(get_db)
) -> AffirmationPreferencesData:
    get_user_or_404(db, user_id)
    return PreferenceStore(db).update_affirmation_preferences(user_id, update)
