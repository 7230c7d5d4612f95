"""Reminder model for scheduled follow-ups."""

from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from followup.clock import utcnow
from followup.database import Base


class ReminderStatus(str, Enum):
    """Status of a reminder."""

    PENDING = "pending"
    SENT = "sent"
    SNOOZED = "snoozed"
    SUPPRESSED = "suppressed"
    DISMISSED = "dismissed"
    FAILED = "failed"


class NotificationMethod(str, Enum):
    """Channel a reminder is delivered through."""

    PUSH = "push"
    IN_APP = "in_app"
    EMAIL = "email"


# Statuses from which a reminder may still fire
ACTIVE_STATUSES = (ReminderStatus.PENDING.value, ReminderStatus.SNOOZED.value)


class Reminder(Base):
    """Reminder model for a scheduled follow-up.

    A snoozed reminder keeps its identity but carries a new scheduled_time,
    which starts a fresh delivery cycle.
    """

    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id"), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_time: Mapped[datetime] = mapped_column(nullable=False)
    notification_method: Mapped[str] = mapped_column(
        String(20), default=NotificationMethod.PUSH.value
    )
    status: Mapped[str] = mapped_column(String(50), default=ReminderStatus.PENDING.value)
    sent_time: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="reminders")  # noqa: F821
    contact: Mapped["Contact"] = relationship()  # noqa: F821

    __table_args__ = (
        Index("idx_reminders_scheduled_time", "scheduled_time"),
        Index("idx_reminders_status", "status"),
        Index("idx_reminders_user_id", "user_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return f"<Reminder(id={self.id}, status='{self.status}')>"
