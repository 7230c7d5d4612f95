"""Preference store.

Reads snooze, category and affirmation preferences for the duration of one
request or task. Values are memoized for the lifetime of the store only and
every write invalidates that user's entries, so a change is visible to the
next read in the same unit of work and to every later unit of work.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from followup.config import AppConfig, get_app_config
from followup.models.preferences import (
    AffirmationPreferences,
    CategoryPreference,
    ReminderCategory,
    SnoozePreferences,
)
from followup.schemas.preferences import (
    AffirmationPreferencesData,
    AffirmationPreferencesUpdate,
    CategoryPreferenceData,
    CategoryPreferenceUpdate,
    SnoozePreferencesData,
    SnoozePreferencesUpdate,
)

logger = logging.getLogger(__name__)

AFFIRMATION_KEYWORDS = ("affirmation", "motivation", "inspire")


def categorize_reminder(message: str | None, contact_id: int | None) -> ReminderCategory:
    """Map a reminder onto its coarse category."""
    if contact_id is not None:
        return ReminderCategory.FOLLOW_UP
    text = (message or "").lower()
    if any(keyword in text for keyword in AFFIRMATION_KEYWORDS):
        return ReminderCategory.AFFIRMATION
    return ReminderCategory.GENERIC


class PreferenceStore:
    """Per-unit-of-work view of user preferences."""

    def __init__(self, db: Session, app_config: AppConfig | None = None):
        self.db = db
        self.app_config = app_config or get_app_config()
        self._snooze: dict[int, SnoozePreferencesData] = {}
        self._affirmation: dict[int, AffirmationPreferencesData] = {}
        self._category: dict[tuple[int, str], CategoryPreferenceData] = {}

    def invalidate(self, user_id: int) -> None:
        """Drop every memoized entry for a user."""
        self._snooze.pop(user_id, None)
        self._affirmation.pop(user_id, None)
        for key in [k for k in self._category if k[0] == user_id]:
            del self._category[key]

    # Reads

    def get_snooze_preferences(self, user_id: int) -> SnoozePreferencesData:
        if user_id not in self._snooze:
            row = (
                self.db.query(SnoozePreferences)
                .filter(SnoozePreferences.user_id == user_id)
                .first()
            )
            if row is None:
                data = SnoozePreferencesData(user_id=user_id, **self.app_config.snooze_defaults)
            else:
                data = SnoozePreferencesData.model_validate(row)
            self._snooze[user_id] = data
        return self._snooze[user_id]

    def get_category_preference(
        self, user_id: int, category: ReminderCategory | str
    ) -> CategoryPreferenceData:
        category = ReminderCategory(category)
        key = (user_id, category.value)
        if key not in self._category:
            row = (
                self.db.query(CategoryPreference)
                .filter(
                    CategoryPreference.user_id == user_id,
                    CategoryPreference.category == category.value,
                )
                .first()
            )
            if row is None:
                data = CategoryPreferenceData(
                    category=category, **self.app_config.category_defaults
                )
            else:
                data = CategoryPreferenceData.model_validate(row)
            self._category[key] = data
        return self._category[key]

    def get_affirmation_preferences(self, user_id: int) -> AffirmationPreferencesData:
        if user_id not in self._affirmation:
            row = (
                self.db.query(AffirmationPreferences)
                .filter(AffirmationPreferences.user_id == user_id)
                .first()
            )
            if row is None:
                data = AffirmationPreferencesData(
                    user_id=user_id, **self.app_config.affirmation_defaults
                )
            else:
                data = AffirmationPreferencesData.model_validate(row)
            self._affirmation[user_id] = data
        return self._affirmation[user_id]

    # Writes

    def update_snooze_preferences(
        self, user_id: int, update: SnoozePreferencesUpdate
    ) -> SnoozePreferencesData:
        """Upsert the user's snooze preferences row."""
        row = (
            self.db.query(SnoozePreferences).filter(SnoozePreferences.user_id == user_id).first()
        )
        if row is None:
            current = self.get_snooze_preferences(user_id)
            row = SnoozePreferences(**_row_values(current.model_dump(mode="python")))
            self.db.add(row)

        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(row, field, _column_value(value))

        self.db.commit()
        self.invalidate(user_id)
        logger.info(f"Updated snooze preferences for user {user_id}")
        return self.get_snooze_preferences(user_id)

    def reset_snooze_preferences(self, user_id: int) -> SnoozePreferencesData:
        """Delete the user's row so configured defaults apply again."""
        self.db.query(SnoozePreferences).filter(SnoozePreferences.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.commit()
        self.invalidate(user_id)
        logger.info(f"Reset snooze preferences for user {user_id}")
        return self.get_snooze_preferences(user_id)

    def update_category_preference(
        self, user_id: int, category: ReminderCategory | str, update: CategoryPreferenceUpdate
    ) -> CategoryPreferenceData:
        category = ReminderCategory(category)
        row = (
            self.db.query(CategoryPreference)
            .filter(
                CategoryPreference.user_id == user_id,
                CategoryPreference.category == category.value,
            )
            .first()
        )
        if row is None:
            row = CategoryPreference(
                user_id=user_id, category=category.value, **self.app_config.category_defaults
            )
            self.db.add(row)

        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(row, field, value)

        self.db.commit()
        self.invalidate(user_id)
        logger.info(f"Updated {category.value} category preference for user {user_id}")
        return self.get_category_preference(user_id, category)

    def update_affirmation_preferences(
        self, user_id: int, update: AffirmationPreferencesUpdate
    ) -> AffirmationPreferencesData:
        row = (
            self.db.query(AffirmationPreferences)
            .filter(AffirmationPreferences.user_id == user_id)
            .first()
        )
        if row is None:
            current = self.get_affirmation_preferences(user_id)
            row = AffirmationPreferences(**current.model_dump())
            self.db.add(row)

        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(row, field, value)

        self.db.commit()
        self.invalidate(user_id)
        logger.info(f"Updated affirmation preferences for user {user_id}")
        return self.get_affirmation_preferences(user_id)


def _column_value(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    return value


def _row_values(values: dict[str, Any]) -> dict[str, Any]:
    return {key: _column_value(value) for key, value in values.items()}
