"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from followup.database import Base, JSONType
from followup.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model for storing user profiles.

    ``snooze_pattern`` holds the rolling snooze duration samples keyed by
    ``time_<hour bucket>`` and ``day_<weekday>``.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    timezone: Mapped[str] = mapped_column(String(50), default="UTC")
    ntfy_topic: Mapped[str | None] = mapped_column(String(100), nullable=True)
    snooze_pattern: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # Relationships
    contacts: Mapped[list["Contact"]] = relationship(back_populates="user")  # noqa: F821
    reminders: Mapped[list["Reminder"]] = relationship(back_populates="user")  # noqa: F821

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}')>"
