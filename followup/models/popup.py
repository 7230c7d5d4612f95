"""Popup queue, trigger rules and the action audit trail."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from followup.clock import utcnow
from followup.database import Base, JSONType


class PopupStatus(str, Enum):
    """Lifecycle of a popup: queued -> displayed -> acted | expired."""

    QUEUED = "queued"
    DISPLAYED = "displayed"
    ACTED = "acted"
    EXPIRED = "expired"


class PopupActionType(str, Enum):
    """Normalized popup actions."""

    FOLLOW_UP_NOW = "FOLLOW_UP_NOW"
    MARK_DONE = "MARK_DONE"
    SNOOZE = "SNOOZE"
    DISMISS = "DISMISS"


class Popup(Base):
    """A queued, prioritized, expiring in-app prompt."""

    __tablename__ = "popups"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reminder_id: Mapped[int | None] = mapped_column(nullable=True)
    contact_id: Mapped[int | None] = mapped_column(nullable=True)
    rule_id: Mapped[int | None] = mapped_column(nullable=True)
    rule_key: Mapped[str] = mapped_column(String(100), nullable=False)
    source_event_id: Mapped[int | None] = mapped_column(nullable=True)
    template_type: Mapped[str] = mapped_column(String(50), nullable=False)
    template_key: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    affirmation: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=5)
    status: Mapped[str] = mapped_column(String(20), default=PopupStatus.QUEUED.value)
    queued_at: Mapped[datetime] = mapped_column(default=utcnow)
    displayed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    snooze_until: Mapped[datetime | None] = mapped_column(nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    action_taken: Mapped[str | None] = mapped_column(String(30), nullable=True)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict)

    __table_args__ = (
        Index("idx_popups_user_status", "user_id", "status"),
        Index("idx_popups_user_rule_key", "user_id", "rule_key", "queued_at"),
        Index("idx_popups_source_event", "user_id", "source_event_id"),
    )

    def __repr__(self) -> str:
        return f"<Popup(id={self.id}, status='{self.status}', priority={self.priority})>"


class PopupRule(Base):
    """User-defined mapping from an event type to a popup template."""

    __tablename__ = "popup_rules"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    template_key: Mapped[str] = mapped_column(String(50), nullable=False)
    conditions: Mapped[dict] = mapped_column(JSONType, default=dict)
    priority: Mapped[int] = mapped_column(Integer, default=5)
    cooldown_seconds: Mapped[int] = mapped_column(Integer, default=0)
    max_per_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ttl_seconds: Mapped[int] = mapped_column(Integer, default=86400)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (Index("idx_popup_rules_user_event", "user_id", "trigger_event_type"),)

    @property
    def rule_key(self) -> str:
        return f"rule:{self.id}"

    def __repr__(self) -> str:
        return f"<PopupRule(id={self.id}, trigger='{self.trigger_event_type}')>"


class PopupAction(Base):
    """Audit record of a user action on a popup."""

    __tablename__ = "popup_actions"

    id: Mapped[int] = mapped_column(primary_key=True)
    popup_id: Mapped[int] = mapped_column(ForeignKey("popups.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    action_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
