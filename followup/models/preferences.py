"""Per-user preference rows consumed by the policy engines."""

from datetime import time
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from followup.database import Base, JSONType
from followup.models.mixins import TimestampMixin


class BundleFormat(str, Enum):
    """Presentation style of a bundled delivery."""

    LIST = "list"
    SUMMARY = "summary"
    COMBINED = "combined"


class ReminderCategory(str, Enum):
    """Coarse reminder category used for category preferences."""

    FOLLOW_UP = "follow_up"
    AFFIRMATION = "affirmation"
    GENERIC = "generic"


class SnoozePreferences(Base, TimestampMixin):
    """Schedule and suppression configuration, one row per user.

    Quiet hours may wrap midnight and always win over working hours.
    Weekdays are numbered like ``date.weekday()`` (0 = Monday).
    """

    __tablename__ = "snooze_preferences"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    working_hours_start: Mapped[time] = mapped_column(Time, nullable=False)
    working_hours_end: Mapped[time] = mapped_column(Time, nullable=False)
    working_days: Mapped[list[int]] = mapped_column(JSONType, nullable=False)
    quiet_hours_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    quiet_hours_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    allow_weekends: Mapped[bool] = mapped_column(Boolean, default=False)
    max_reminders_per_day: Mapped[int] = mapped_column(Integer, default=10)
    cooldown_minutes: Mapped[int] = mapped_column(Integer, default=30)
    bundle_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    bundle_window_minutes: Mapped[int] = mapped_column(Integer, default=5)
    bundle_format: Mapped[str] = mapped_column(String(20), default=BundleFormat.LIST.value)
    smart_suggestions_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    dnd_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    dnd_override_rules: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<SnoozePreferences(user_id={self.user_id})>"


class CategoryPreference(Base, TimestampMixin):
    """Per-category snooze defaults and on/off switch."""

    __tablename__ = "category_preferences"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    default_duration_minutes: Mapped[int] = mapped_column(Integer, default=30)
    intensity: Mapped[str] = mapped_column(String(10), default="medium")
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (UniqueConstraint("user_id", "category", name="uq_category_preferences"),)


class AffirmationPreferences(Base, TimestampMixin):
    """Affirmation switches and rate limits, one row per user."""

    __tablename__ = "affirmation_preferences"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    sales_momentum_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    calm_productivity_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    consistency_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    resilience_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    focus_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    general_positive_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    global_cooldown_minutes: Mapped[int] = mapped_column(Integer, default=30)
    daily_cap: Mapped[int] = mapped_column(Integer, default=10)
    tone_preference: Mapped[str] = mapped_column(String(10), default="mixed")
