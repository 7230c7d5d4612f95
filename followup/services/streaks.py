"""Completion streaks.

A streak is the number of consecutive local days, ending today or yesterday,
on which the user completed at least one reminder.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from followup.clock import get_tz, local_day_bounds, to_local, to_naive_utc, utcnow
from followup.models.event import Event, EventSource, EventType
from followup.models.user import User
from followup.schemas.affirmation import StreakInfo
from followup.services.events import log_event, query_events

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 366


def _run_length(days: set[date], end: date) -> int:
    length = 0
    current = end
    while current in days:
        length += 1
        current -= timedelta(days=1)
    return length


class StreakService:
    """Computes streaks and emits streak events after completions."""

    def __init__(self, db: Session):
        self.db = db

    def _user_tz(self, user_id: int):
        user = self.db.get(User, user_id)
        return get_tz(user.timezone if user else None)

    def _completion_days(self, user_id: int, now: datetime, tz) -> set[date]:
        events = query_events(
            self.db,
            user_id,
            event_types=[EventType.REMINDER_COMPLETED],
            since=now - timedelta(days=LOOKBACK_DAYS),
            until=now + timedelta(seconds=1),
            limit=None,
        )
        return {to_local(e.created_at, tz).date() for e in events}

    def get_streak(self, user_id: int, now: datetime | None = None) -> StreakInfo:
        now = to_naive_utc(now) if now else utcnow()
        tz = self._user_tz(user_id)
        days = self._completion_days(user_id, now, tz)
        today = to_local(now, tz).date()
        yesterday = today - timedelta(days=1)

        if today in days:
            current = _run_length(days, today)
        elif yesterday in days:
            current = _run_length(days, yesterday)
        else:
            current = 0
        return StreakInfo(current_streak=current, last_completed_date=max(days) if days else None)

    def calculate_streak(self, user_id: int, now: datetime | None = None) -> int:
        return self.get_streak(user_id, now).current_streak

    def update_on_completion(self, user_id: int, now: datetime | None = None) -> list[Event]:
        """Emit streak events after a completion has been logged.

        Only the first completion of a local day changes the streak, so later
        completions that day emit nothing.

        Returns:
            Events written (at most one)
        """
        now = to_naive_utc(now) if now else utcnow()
        tz = self._user_tz(user_id)
        start, _ = local_day_bounds(now, tz)
        completed_today = query_events(
            self.db,
            user_id,
            event_types=[EventType.REMINDER_COMPLETED],
            since=start,
            until=now + timedelta(seconds=1),
            limit=2,
        )
        if len(completed_today) != 1:
            return []

        days = self._completion_days(user_id, now, tz)
        today = to_local(now, tz).date()
        streak = _run_length(days, today)
        if streak >= 2:
            event = log_event(
                self.db,
                user_id,
                EventType.STREAK_ACHIEVED,
                {"streak_days": streak},
                source=EventSource.SYSTEM,
                created_at=now,
            )
            logger.info(f"User {user_id} reached a {streak} day streak")
            return [event]

        earlier = [d for d in days if d < today]
        if not earlier:
            return []

        previous = _run_length(days, max(earlier))
        event = log_event(
            self.db,
            user_id,
            EventType.STREAK_BROKEN,
            {"streak_days": 1, "previous_streak": previous},
            source=EventSource.SYSTEM,
            created_at=now,
        )
        logger.info(f"User {user_id} restarted after a {previous} day streak")
        return [event]
