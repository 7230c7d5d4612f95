"""Cooldown tracking between reminders for the same contact."""

from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from followup.database import Base


class ReminderCooldown(Base):
    """Last delivery time per (user, contact) or per (user, generic bucket)."""

    __tablename__ = "reminder_cooldowns"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id"), nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_reminder_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "contact_id", "entity_type", name="uq_reminder_cooldowns"),
    )
