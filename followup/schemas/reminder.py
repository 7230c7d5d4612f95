"""Reminder schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from followup.models.reminder import NotificationMethod


class ReminderBase(BaseModel):
    """Base reminder schema."""

    message: str
    scheduled_time: datetime
    notification_method: NotificationMethod = NotificationMethod.PUSH
    contact_id: int | None = None


class ReminderCreate(ReminderBase):
    """Schema for creating a reminder."""

    user_id: int


class ReminderUpdate(BaseModel):
    """Schema for updating a reminder."""

    message: str | None = None
    scheduled_time: datetime | None = None
    status: str | None = None


class Reminder(ReminderBase):
    """Schema for reminder response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: str
    sent_time: datetime | None = None
    created_at: datetime


class ReminderSnoozeRequest(BaseModel):
    """Snooze a reminder by a number of minutes, or accept the smart suggestion."""

    minutes: int | None = Field(default=None, ge=1, le=60 * 24 * 14)
    use_suggestion: bool = False


class SuppressionDecision(BaseModel):
    """Outcome of a suppression evaluation."""

    suppressed: bool
    reason: str | None = None
    next_attempt_time: datetime | None = None
    message: str | None = None


class ConflictResult(BaseModel):
    """Outcome of conflict detection for one reminder."""

    should_bundle: bool
    bundle_id: int | None = None
    reminder_ids: list[int] = []


class ReminderBundle(BaseModel):
    """Schema for bundle response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    bundle_time: datetime
    delivery_format: str
    delivered: bool
    delivered_at: datetime | None = None
    reminder_ids: list[int]


class DispatchResult(BaseModel):
    """Outcome of a scheduler callback for one reminder."""

    reminder_id: int
    outcome: str
    detail: str | None = None
    next_attempt_time: datetime | None = None
    bundle_id: int | None = None


class SuppressionDetail(BaseModel):
    """Why a reminder was held back, in user-facing terms."""

    reason_code: str
    reason_human: str
    rule_name: str
    intended_fire_time: datetime | None = None
    next_attempt_time: datetime | None = None
    evaluated_at: datetime


class AuditEntry(BaseModel):
    event_id: int
    event_type: str
    label: str
    description: str
    created_at: datetime
    source: str | None = None
    event_data: dict = {}
    suppression: SuppressionDetail | None = None


class ReminderAudit(BaseModel):
    """Lifecycle of one reminder, newest first."""

    reminder_id: int
    status: str
    scheduled_time: datetime
    last_suppression: SuppressionDetail | None = None
    timeline: list[AuditEntry]
