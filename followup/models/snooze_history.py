"""Snooze history used by the smart snooze recommender."""

from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from followup.clock import utcnow
from followup.database import Base, JSONType


class SnoozeReason(str, Enum):
    """Why a snooze happened."""

    USER_ACTION = "user_action"
    SMART_SUGGESTION = "smart_suggestion"
    AUTO = "auto"


class SnoozeHistory(Base):
    """Immutable record of one snooze."""

    __tablename__ = "snooze_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    reminder_id: Mapped[int | None] = mapped_column(nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(20), default=SnoozeReason.USER_ACTION.value)
    time_of_day: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    context_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (Index("idx_snooze_history_user_created", "user_id", "created_at"),)
