"""Append-only behavioural event log."""

from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from followup.clock import utcnow
from followup.database import Base, JSONType


class EventType(str, Enum):
    """Closed set of event types."""

    REMINDER_CREATED = "reminder_created"
    REMINDER_DUE = "reminder_due"
    REMINDER_SENT = "reminder_sent"
    REMINDER_FAILED = "reminder_failed"
    REMINDER_COMPLETED = "reminder_completed"
    REMINDER_SNOOZED = "reminder_snoozed"
    REMINDER_DISMISSED = "reminder_dismissed"
    REMINDER_SUPPRESSED = "reminder_suppressed"
    REMINDER_OVERDUE = "reminder_overdue"
    BUNDLE_DELIVERED = "bundle_delivered"
    POPUP_SHOWN = "popup_shown"
    POPUP_ACTION = "popup_action"
    INACTIVITY_DETECTED = "inactivity_detected"
    STREAK_ACHIEVED = "streak_achieved"
    STREAK_BROKEN = "streak_broken"
    FOLLOW_UP_REQUIRED = "follow_up_required"
    EMAIL_OPENED = "email_opened"
    NO_REPLY_AFTER_N_DAYS = "no_reply_after_n_days"
    SNOOZE_SUGGESTED = "snooze_suggested"
    AFFIRMATION_SHOWN = "affirmation_shown"
    AFFIRMATION_SUPPRESSED = "affirmation_suppressed"


class EventSource(str, Enum):
    """Origin of an event."""

    APP = "app"
    SCHEDULER = "scheduler"
    CLIENT = "client"
    SYSTEM = "system"


class Event(Base):
    """A single immutable fact. Never updated or deleted by the engine."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    event_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    source: Mapped[str] = mapped_column(String(20), default=EventSource.APP.value)
    contact_id: Mapped[int | None] = mapped_column(nullable=True)
    reminder_id: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (
        Index("idx_events_user_type_created", "user_id", "event_type", "created_at"),
        Index("idx_events_reminder_id", "reminder_id"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, event_type='{self.event_type}')>"
