"""Affirmation catalogue and usage ledger."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from followup.clock import utcnow
from followup.database import Base


class AffirmationCategory(str, Enum):
    """Closed set of affirmation categories."""

    SALES_MOMENTUM = "sales_momentum"
    CALM_PRODUCTIVITY = "calm_productivity"
    CONSISTENCY = "consistency"
    RESILIENCE = "resilience"
    FOCUS = "focus"
    GENERAL_POSITIVE = "general_positive"


class Affirmation(Base):
    """A short motivational line."""

    __tablename__ = "affirmations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Affirmation(id={self.id}, category='{self.category}')>"


class AffirmationUsage(Base):
    """One affirmation shown to one user. Drives cooldown, cap and rotation."""

    __tablename__ = "affirmation_usage"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    affirmation_id: Mapped[int] = mapped_column(ForeignKey("affirmations.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    popup_id: Mapped[int | None] = mapped_column(nullable=True)
    shown_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (Index("idx_affirmation_usage_user_shown", "user_id", "shown_at"),)
