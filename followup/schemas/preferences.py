"""Preference schemas.

The ``*Data`` classes are read snapshots returned by the preference store,
whether backed by a row or by configured defaults.
"""

from datetime import time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from followup.models.preferences import BundleFormat, ReminderCategory


class DndOverrideRules(BaseModel):
    """Which reminders still get through while do-not-disturb is on."""

    emergency_contacts: list[int] = []
    override_keywords: list[str] = []


class SnoozePreferencesData(BaseModel):
    """Effective schedule and suppression preferences for one user."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    working_hours_start: time
    working_hours_end: time
    working_days: list[int]
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    allow_weekends: bool = False
    max_reminders_per_day: int = 10
    cooldown_minutes: int = 30
    bundle_enabled: bool = True
    bundle_window_minutes: int = 5
    bundle_format: BundleFormat = BundleFormat.LIST
    smart_suggestions_enabled: bool = True
    dnd_enabled: bool = False
    dnd_override_rules: DndOverrideRules = Field(default_factory=DndOverrideRules)

    @field_validator("dnd_override_rules", mode="before")
    @classmethod
    def _default_override_rules(cls, value):
        return value or {}

    @property
    def has_quiet_hours(self) -> bool:
        return self.quiet_hours_start is not None and self.quiet_hours_end is not None


class SnoozePreferencesUpdate(BaseModel):
    """Partial update of snooze preferences."""

    working_hours_start: time | None = None
    working_hours_end: time | None = None
    working_days: list[int] | None = None
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    allow_weekends: bool | None = None
    max_reminders_per_day: int | None = Field(default=None, ge=0)
    cooldown_minutes: int | None = Field(default=None, ge=0)
    bundle_enabled: bool | None = None
    bundle_window_minutes: int | None = Field(default=None, ge=1, le=120)
    bundle_format: BundleFormat | None = None
    smart_suggestions_enabled: bool | None = None
    dnd_enabled: bool | None = None
    dnd_override_rules: DndOverrideRules | None = None

    @field_validator("working_days")
    @classmethod
    def _valid_weekdays(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return value
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("working_days must be weekday numbers 0-6 (Monday=0)")
        return sorted(set(value))


class CategoryPreferenceData(BaseModel):
    """Effective category preference."""

    model_config = ConfigDict(from_attributes=True)

    category: ReminderCategory
    default_duration_minutes: int = 30
    intensity: str = "medium"
    enabled: bool = True


class CategoryPreferenceUpdate(BaseModel):
    """Partial update of a category preference."""

    default_duration_minutes: int | None = Field(default=None, ge=1, le=60 * 24 * 14)
    intensity: str | None = Field(default=None, pattern="^(low|medium|high)$")
    enabled: bool | None = None


class AffirmationPreferencesData(BaseModel):
    """Effective affirmation preferences."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    enabled: bool = True
    sales_momentum_enabled: bool = True
    calm_productivity_enabled: bool = True
    consistency_enabled: bool = True
    resilience_enabled: bool = True
    focus_enabled: bool = True
    general_positive_enabled: bool = True
    global_cooldown_minutes: int = 30
    daily_cap: int = 10
    tone_preference: str = "mixed"

    def is_category_enabled(self, category: str) -> bool:
        return bool(getattr(self, f"{category}_enabled", False))


class AffirmationPreferencesUpdate(BaseModel):
    """Partial update of affirmation preferences."""

    enabled: bool | None = None
    sales_momentum_enabled: bool | None = None
    calm_productivity_enabled: bool | None = None
    consistency_enabled: bool | None = None
    resilience_enabled: bool | None = None
    focus_enabled: bool | None = None
    general_positive_enabled: bool | None = None
    global_cooldown_minutes: int | None = Field(default=None, ge=0)
    daily_cap: int | None = Field(default=None, ge=0)
    tone_preference: str | None = Field(default=None, pattern="^(sales|calm|mixed)$")
