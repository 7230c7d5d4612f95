"""SQLAlchemy ORM models."""

from followup.models.affirmation import Affirmation, AffirmationUsage
from followup.models.bundle import ReminderBundle, ReminderBundleItem
from followup.models.contact import Contact
from followup.models.cooldown import ReminderCooldown
from followup.models.event import Event
from followup.models.popup import Popup, PopupAction, PopupRule
from followup.models.preferences import (
    AffirmationPreferences,
    CategoryPreference,
    SnoozePreferences,
)
from followup.models.reminder import Reminder
from followup.models.snooze_history import SnoozeHistory
from followup.models.user import User

__all__ = [
    "Affirmation",
    "AffirmationPreferences",
    "AffirmationUsage",
    "CategoryPreference",
    "Contact",
    "Event",
    "Popup",
    "PopupAction",
    "PopupRule",
    "Reminder",
    "ReminderBundle",
    "ReminderBundleItem",
    "ReminderCooldown",
    "SnoozeHistory",
    "SnoozePreferences",
    "User",
]
