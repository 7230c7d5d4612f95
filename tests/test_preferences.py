"""Tests for the preference store."""

from datetime import time

import pytest
from pydantic import ValidationError

from followup.models.preferences import ReminderCategory
from followup.schemas.preferences import (
    CategoryPreferenceUpdate,
    SnoozePreferencesUpdate,
)
from followup.services.preferences import PreferenceStore, categorize_reminder


class TestCategorizeReminder:
    def test_contact_makes_follow_up(self):
        assert categorize_reminder("Motivation boost", 4) == ReminderCategory.FOLLOW_UP

    def test_affirmation_keyword(self):
        assert categorize_reminder("Daily motivation", None) == ReminderCategory.AFFIRMATION

    def test_generic(self):
        assert categorize_reminder(None, None) == ReminderCategory.GENERIC


class TestPreferenceStore:
    def test_defaults_without_row(self, db_session, user):
        prefs = PreferenceStore(db_session).get_snooze_preferences(user.id)
        assert prefs.working_hours_start == time(9, 0)
        assert prefs.working_days == [0, 1, 2, 3, 4]
        assert prefs.max_reminders_per_day == 10
        assert prefs.has_quiet_hours is False

    def test_update_is_visible_immediately(self, db_session, user):
        store = PreferenceStore(db_session)
        assert store.get_snooze_preferences(user.id).cooldown_minutes == 30

        store.update_snooze_preferences(
            user.id, SnoozePreferencesUpdate(cooldown_minutes=45, allow_weekends=True)
        )

        prefs = store.get_snooze_preferences(user.id)
        assert prefs.cooldown_minutes == 45
        assert prefs.allow_weekends is True
        assert PreferenceStore(db_session).get_snooze_preferences(user.id).cooldown_minutes == 45

    def test_partial_update_keeps_other_fields(self, db_session, user):
        store = PreferenceStore(db_session)
        store.update_snooze_preferences(user.id, SnoozePreferencesUpdate(cooldown_minutes=45))
        store.update_snooze_preferences(user.id, SnoozePreferencesUpdate(bundle_enabled=False))

        prefs = store.get_snooze_preferences(user.id)
        assert prefs.cooldown_minutes == 45
        assert prefs.bundle_enabled is False

    def test_reset_restores_defaults(self, db_session, user):
        store = PreferenceStore(db_session)
        store.update_snooze_preferences(user.id, SnoozePreferencesUpdate(cooldown_minutes=45))

        prefs = store.reset_snooze_preferences(user.id)

        assert prefs.cooldown_minutes == 30

    def test_memoized_until_invalidated(self, db_session, user):
        store = PreferenceStore(db_session)
        store.get_snooze_preferences(user.id)
        PreferenceStore(db_session).update_snooze_preferences(
            user.id, SnoozePreferencesUpdate(cooldown_minutes=5)
        )

        assert store.get_snooze_preferences(user.id).cooldown_minutes == 30
        store.invalidate(user.id)
        assert store.get_snooze_preferences(user.id).cooldown_minutes == 5

    def test_category_preference_upsert(self, db_session, user):
        store = PreferenceStore(db_session)
        assert store.get_category_preference(user.id, "follow_up").enabled is True

        updated = store.update_category_preference(
            user.id, ReminderCategory.FOLLOW_UP, CategoryPreferenceUpdate(intensity="high")
        )

        assert updated.intensity == "high"
        assert updated.enabled is True
        assert store.get_category_preference(user.id, "generic").intensity == "medium"

    def test_invalid_working_day_rejected(self):
        with pytest.raises(ValidationError):
            SnoozePreferencesUpdate(working_days=[0, 7])
