"""Tests for completion streaks."""

from datetime import datetime, timedelta

from followup.models.event import EventType
from followup.services.events import log_event
from followup.services.streaks import StreakService

MONDAY = datetime(2026, 10, 19, 12, 0)


def complete_on(db_session, user_id: int, when: datetime):
    return log_event(db_session, user_id, EventType.REMINDER_COMPLETED, {}, created_at=when)


class TestStreaks:
    def test_no_completions(self, db_session, user):
        info = StreakService(db_session).get_streak(user.id, now=MONDAY)
        assert info.current_streak == 0
        assert info.last_completed_date is None

    def test_consecutive_days(self, db_session, user):
        for days_ago in (2, 1, 0):
            complete_on(db_session, user.id, MONDAY - timedelta(days=days_ago))
        assert StreakService(db_session).calculate_streak(user.id, now=MONDAY) == 3

    def test_streak_survives_until_end_of_today(self, db_session, user):
        for days_ago in (2, 1):
            complete_on(db_session, user.id, MONDAY - timedelta(days=days_ago))
        assert StreakService(db_session).calculate_streak(user.id, now=MONDAY) == 2

    def test_first_completion_of_day_emits_achievement(self, db_session, user):
        complete_on(db_session, user.id, MONDAY - timedelta(days=1))
        complete_on(db_session, user.id, MONDAY)

        events = StreakService(db_session).update_on_completion(user.id, now=MONDAY)

        assert [e.event_type for e in events] == [EventType.STREAK_ACHIEVED.value]
        assert events[0].event_data["streak_days"] == 2

    def test_second_completion_same_day_is_silent(self, db_session, user):
        complete_on(db_session, user.id, MONDAY - timedelta(days=1))
        complete_on(db_session, user.id, MONDAY)
        complete_on(db_session, user.id, MONDAY + timedelta(hours=1))

        service = StreakService(db_session)
        assert service.update_on_completion(user.id, now=MONDAY + timedelta(hours=1)) == []

    def test_gap_reports_broken_streak(self, db_session, user):
        for days_ago in (5, 4, 3):
            complete_on(db_session, user.id, MONDAY - timedelta(days=days_ago))
        complete_on(db_session, user.id, MONDAY)

        events = StreakService(db_session).update_on_completion(user.id, now=MONDAY)

        assert events[0].event_type == EventType.STREAK_BROKEN.value
        assert events[0].event_data == {"streak_days": 1, "previous_streak": 3}
