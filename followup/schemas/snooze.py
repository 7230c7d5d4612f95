"""Smart snooze schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from followup.models.snooze_history import SnoozeReason


class SnoozeSuggestion(BaseModel):
    duration_minutes: int
    confidence: float
    reason: str
    based_on: str


class SnoozeCandidateType(str, Enum):
    LATER_TODAY = "later_today"
    TOMORROW_MORNING = "tomorrow_morning"
    NEXT_WORKING_DAY = "next_working_day"
    IN_3_DAYS = "in_3_days"
    NEXT_WEEK = "next_week"
    PICK_A_TIME = "pick_a_time"


class SnoozeCandidate(BaseModel):
    """A concrete time to snooze until, scored 0-100 against the user's schedule."""

    type: SnoozeCandidateType
    label: str
    # None for pick_a_time
    scheduled_time: datetime | None = None
    score: int = 0
    recommended: bool = False
    adjusted: bool = False


class SnoozeRecommendation(BaseModel):
    user_id: int
    reminder_id: int | None = None
    context_type: str
    candidates: list[SnoozeCandidate]
    recommended: SnoozeCandidate | None = None


class SnoozeLogCreate(BaseModel):
    user_id: int
    reminder_id: int | None = None
    duration_minutes: int = Field(ge=1, le=60 * 24 * 14)
    reason: SnoozeReason = SnoozeReason.USER_ACTION
    context_data: dict[str, Any] = {}


class SnoozeHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    reminder_id: int | None = None
    duration_minutes: int
    reason: str
    time_of_day: int
    day_of_week: int
    created_at: datetime
