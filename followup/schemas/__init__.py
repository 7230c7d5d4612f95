"""Pydantic schemas for request/response validation."""

from followup.schemas.affirmation import Affirmation, AffirmationSelection, StreakInfo
from followup.schemas.contact import Contact, ContactCreate
from followup.schemas.event import Event, EventCreate, validate_event_data
from followup.schemas.popup import (
    NextPopup,
    Popup,
    PopupActionRequest,
    PopupActionResult,
    PopupRule,
    PopupRuleCreate,
    PopupRuleUpdate,
    RuleConditions,
)
from followup.schemas.preferences import (
    AffirmationPreferencesData,
    CategoryPreferenceData,
    SnoozePreferencesData,
)
from followup.schemas.reminder import (
    ConflictResult,
    DispatchResult,
    Reminder,
    ReminderAudit,
    ReminderBundle,
    ReminderCreate,
    ReminderUpdate,
    SuppressionDecision,
)
from followup.schemas.snooze import SnoozeCandidate, SnoozeRecommendation, SnoozeSuggestion
from followup.schemas.user import User, UserCreate, UserUpdate

__all__ = [
    "Affirmation",
    "AffirmationPreferencesData",
    "AffirmationSelection",
    "CategoryPreferenceData",
    "ConflictResult",
    "Contact",
    "ContactCreate",
    "DispatchResult",
    "Event",
    "EventCreate",
    "NextPopup",
    "Popup",
    "PopupActionRequest",
    "PopupActionResult",
    "PopupRule",
    "PopupRuleCreate",
    "PopupRuleUpdate",
    "Reminder",
    "ReminderAudit",
    "ReminderBundle",
    "ReminderCreate",
    "ReminderUpdate",
    "RuleConditions",
    "SnoozeCandidate",
    "SnoozePreferencesData",
    "SnoozeRecommendation",
    "SnoozeSuggestion",
    "StreakInfo",
    "SuppressionDecision",
    "User",
    "UserCreate",
    "UserUpdate",
    "validate_event_data",
]
