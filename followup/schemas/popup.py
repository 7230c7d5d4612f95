"""Popup and popup rule schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from followup.models.event import EventType


class Popup(BaseModel):
    """Schema for popup response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    reminder_id: int | None = None
    contact_id: int | None = None
    rule_id: int | None = None
    rule_key: str
    template_type: str
    template_key: str
    title: str
    message: str
    affirmation: str | None = None
    priority: int
    status: str
    queued_at: datetime
    displayed_at: datetime | None = None
    closed_at: datetime | None = None
    snooze_until: datetime | None = None
    expires_at: datetime | None = None
    action_taken: str | None = None
    payload: dict[str, Any] = {}


class NextPopup(BaseModel):
    """Result of a dequeue. ``did_transition`` is false when nothing was claimed."""

    popup: Popup | None = None
    did_transition: bool = False


class PopupActionRequest(BaseModel):
    action_type: str
    action_data: dict[str, Any] = {}


class PopupActionResult(BaseModel):
    popup: Popup
    action_type: str
    action_url: str | None = None
    snooze_until: datetime | None = None
    reminder_id: int | None = None


class PopupSnoozeRequest(BaseModel):
    minutes: int = Field(default=10, ge=1, le=60 * 24)


class RuleConditions(BaseModel):
    """Closed set of popup rule conditions."""

    model_config = ConfigDict(extra="forbid")

    require_contact_id: bool = False
    require_reminder_id: bool = False
    # Every key must equal the same key in the event data
    match: dict[str, Any] = {}


class PopupRuleBase(BaseModel):
    rule_name: str
    trigger_event_type: EventType
    template_key: str
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    priority: int = Field(default=5, ge=1, le=10)
    cooldown_seconds: int = Field(default=0, ge=0)
    max_per_day: int | None = Field(default=None, ge=0)
    ttl_seconds: int = Field(default=86400, ge=0)
    enabled: bool = True
    title: str | None = None
    message: str | None = None


class PopupRuleCreate(PopupRuleBase):
    user_id: int


class PopupRuleUpdate(BaseModel):
    rule_name: str | None = None
    template_key: str | None = None
    conditions: RuleConditions | None = None
    priority: int | None = Field(default=None, ge=1, le=10)
    cooldown_seconds: int | None = Field(default=None, ge=0)
    max_per_day: int | None = Field(default=None, ge=0)
    ttl_seconds: int | None = Field(default=None, ge=0)
    enabled: bool | None = None
    title: str | None = None
    message: str | None = None


class PopupRule(PopupRuleBase):
    """Schema for popup rule response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    trigger_event_type: str
    created_at: datetime
