"""Event schemas.

Event payloads form a closed, tagged union keyed by ``event_type``. Each
payload type accepts extra keys so callers can attach context, but the
known keys are type-checked before an event is persisted.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from followup.models.event import EventSource, EventType


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class ReminderPayload(_Payload):
    event_type: Literal[
        "reminder_created",
        "reminder_due",
        "reminder_sent",
        "reminder_failed",
        "reminder_completed",
        "reminder_snoozed",
        "reminder_dismissed",
        "reminder_overdue",
    ]
    reminder_id: int | None = None
    scheduled_time: datetime | None = None
    message: str | None = None
    snooze_until: datetime | None = None
    error: str | None = None


class SuppressionPayload(_Payload):
    event_type: Literal["reminder_suppressed"]
    reason: str
    intended_fire_time: datetime
    next_attempt_time: datetime | None = None


class BundlePayload(_Payload):
    event_type: Literal["bundle_delivered"]
    bundle_id: int
    reminder_ids: list[int] = []
    delivery_format: str | None = None


class PopupPayload(_Payload):
    event_type: Literal["popup_shown", "popup_action"]
    popup_id: int
    action_type: str | None = None
    rule_key: str | None = None


class InactivityPayload(_Payload):
    event_type: Literal["inactivity_detected"]
    hours_inactive: float | None = None
    last_activity_at: datetime | None = None


class StreakPayload(_Payload):
    event_type: Literal["streak_achieved", "streak_broken"]
    streak_days: int = 0
    previous_streak: int | None = None


class FollowUpPayload(_Payload):
    event_type: Literal["follow_up_required", "email_opened", "no_reply_after_n_days"]
    contact_name: str | None = None
    subject: str | None = None
    days: int | None = None
    action_url: str | None = None


class SnoozeSuggestedPayload(_Payload):
    event_type: Literal["snooze_suggested"]
    reminder_id: int | None = None
    duration_minutes: int | None = None
    confidence: float | None = None
    reason: str | None = None
    candidates: list[dict[str, Any]] = []
    recommended_type: str | None = None
    context_type: str | None = None


class AffirmationPayload(_Payload):
    event_type: Literal["affirmation_shown", "affirmation_suppressed"]
    affirmation_id: int | None = None
    category: str | None = None
    popup_id: int | None = None
    reason: str | None = None


EventPayload = Annotated[
    Union[
        ReminderPayload,
        SuppressionPayload,
        BundlePayload,
        PopupPayload,
        InactivityPayload,
        StreakPayload,
        FollowUpPayload,
        SnoozeSuggestedPayload,
        AffirmationPayload,
    ],
    Field(discriminator="event_type"),
]

_payload_adapter = TypeAdapter(EventPayload)


def validate_event_data(event_type: str, data: dict[str, Any] | None) -> dict[str, Any]:
    """Validate an event payload and return its JSON-ready form.

    Raises:
        ValueError: unknown event type or a payload that does not fit it
    """
    try:
        payload = _payload_adapter.validate_python({**(data or {}), "event_type": event_type})
    except ValidationError as e:
        raise ValueError(f"Invalid payload for event '{event_type}': {e}") from e
    return payload.model_dump(mode="json", exclude={"event_type"}, exclude_none=True)


class EventCreate(BaseModel):
    """Schema for ingesting an event from a client or upstream system."""

    user_id: int
    event_type: EventType
    event_data: dict[str, Any] = {}
    source: EventSource = EventSource.CLIENT
    contact_id: int | None = None
    reminder_id: int | None = None


class Event(BaseModel):
    """Schema for event response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    event_type: str
    event_data: dict[str, Any]
    source: str
    contact_id: int | None = None
    reminder_id: int | None = None
    created_at: datetime


class EventIngestResult(BaseModel):
    """An ingested event plus the popups it queued."""

    event: Event
    popup_ids: list[int] = []
