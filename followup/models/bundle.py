"""Bundles of time-conflicting reminders delivered together."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from followup.clock import utcnow
from followup.database import Base


class ReminderBundle(Base):
    """A single delivery unit for reminders scheduled close together.

    Immutable once delivered.
    """

    __tablename__ = "reminder_bundles"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    bundle_time: Mapped[datetime] = mapped_column(nullable=False)
    delivery_format: Mapped[str] = mapped_column(String(20), default="list")
    delivered: Mapped[bool] = mapped_column(Boolean, default=False)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    items: Mapped[list["ReminderBundleItem"]] = relationship(
        back_populates="bundle", order_by="ReminderBundleItem.id"
    )

    __table_args__ = (Index("idx_reminder_bundles_user_time", "user_id", "bundle_time"),)

    @property
    def reminder_ids(self) -> list[int]:
        return [item.reminder_id for item in self.items]

    def __repr__(self) -> str:
        return f"<ReminderBundle(id={self.id}, delivered={self.delivered})>"


class ReminderBundleItem(Base):
    """Membership of a reminder in a bundle, in insertion order."""

    __tablename__ = "reminder_bundle_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    bundle_id: Mapped[int] = mapped_column(ForeignKey("reminder_bundles.id"), nullable=False)
    reminder_id: Mapped[int] = mapped_column(ForeignKey("reminders.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    bundle: Mapped["ReminderBundle"] = relationship(back_populates="items")

    __table_args__ = (
        UniqueConstraint("bundle_id", "reminder_id", name="uq_reminder_bundle_items"),
    )
