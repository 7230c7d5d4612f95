"""Tests for the smart snooze recommender."""

from datetime import datetime, timedelta

import pytest

from followup.models.event import EventType
from followup.models.snooze_history import SnoozeHistory
from followup.models.user import User
from followup.services.events import log_event, query_events
from followup.services.smart_snooze import (
    SmartSnoozeService,
    hour_distance,
    normalize_duration,
    round_half_up,
)

MONDAY = datetime(2026, 10, 19)
SUNDAY = datetime(2026, 10, 18)


class TestHelpers:
    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [(2, 5), (12.5, 15), (22.4, 20), (25, 25), (27.5, 30), (500, 120)],
    )
    def test_normalize_duration(self, minutes, expected):
        assert normalize_duration(minutes) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_hour_distance_wraps(self):
        assert hour_distance(23, 1) == 2
        assert hour_distance(14, 14) == 0


class TestSuggest:
    def test_default_without_history(self, db_session, user):
        suggestion = SmartSnoozeService(db_session).suggest(user.id, now=MONDAY.replace(hour=14))
        assert suggestion.duration_minutes == 10
        assert suggestion.confidence == 0.3
        assert suggestion.based_on == "default"

    def test_time_of_day_pattern(self, db_session, user):
        service = SmartSnoozeService(db_session)
        for minute, duration in [(5, 15), (20, 15), (40, 45)]:
            service.log_snooze(user.id, duration, now=SUNDAY.replace(hour=14, minute=minute))

        suggestion = service.suggest(user.id, now=MONDAY.replace(hour=14, minute=30))

        assert suggestion.duration_minutes == 25
        assert suggestion.confidence == 0.7
        assert suggestion.based_on == "time_of_day"

    def test_weekday_pattern_needs_more_than_two_entries(self, db_session, user):
        service = SmartSnoozeService(db_session)
        last_monday = MONDAY - timedelta(days=7)
        for hour, duration in [(8, 30), (9, 30), (20, 60)]:
            service.log_snooze(user.id, duration, now=last_monday.replace(hour=hour))

        suggestion = service.suggest(user.id, now=MONDAY.replace(hour=14))

        assert suggestion.based_on == "day_of_week"
        assert suggestion.confidence == 0.8
        assert suggestion.duration_minutes == 40

    def test_stale_history_falls_back(self, db_session, user):
        service = SmartSnoozeService(db_session)
        service.log_snooze(user.id, 60, now=MONDAY - timedelta(days=45))

        suggestion = service.suggest(user.id, now=MONDAY.replace(hour=14))

        assert suggestion.based_on == "sparse_history"
        assert suggestion.duration_minutes == 10

    def test_disabled_returns_none(self, db_session, user, set_snooze_preferences):
        set_snooze_preferences(smart_suggestions_enabled=False)
        assert SmartSnoozeService(db_session).suggest(user.id) is None


class TestLogSnooze:
    def test_records_local_hour_and_weekday(self, db_session, user):
        user.timezone = "America/New_York"
        db_session.commit()

        entry = SmartSnoozeService(db_session).log_snooze(
            user.id, 20, now=datetime(2026, 10, 19, 2, 0)
        )

        # 02:00 UTC Monday is 22:00 Sunday in New York
        assert entry.time_of_day == 22
        assert entry.day_of_week == 6

    def test_updates_rolling_pattern(self, db_session, user):
        service = SmartSnoozeService(db_session)
        for _ in range(25):
            service.log_snooze(user.id, 15, now=MONDAY.replace(hour=13))

        db_session.refresh(user)
        pattern = db_session.get(User, user.id).snooze_pattern
        assert len(pattern["time_12"]) == 20
        assert len(pattern["day_0"]) == 20
        assert db_session.query(SnoozeHistory).count() == 25


def candidate_types(recommendation) -> list[str]:
    return [c.type.value for c in recommendation.candidates]


class TestRecommend:
    def test_candidates_without_history(self, db_session, user):
        recommendation = SmartSnoozeService(db_session).recommend(
            user.id, now=MONDAY.replace(hour=10)
        )

        assert candidate_types(recommendation) == [
            "later_today",
            "tomorrow_morning",
            "next_working_day",
            "in_3_days",
            "next_week",
            "pick_a_time",
        ]
        later_today, tomorrow = recommendation.candidates[:2]
        assert later_today.scheduled_time == MONDAY.replace(hour=12)
        assert later_today.label == "Today at 12:00pm"
        assert later_today.score == 80
        assert tomorrow.scheduled_time == datetime(2026, 10, 20, 9, 15)
        assert tomorrow.label == "Tomorrow at 9:15am"
        assert recommendation.recommended.type.value == "later_today"
        assert recommendation.candidates[-1].scheduled_time is None

    def test_later_today_dropped_after_working_hours(self, db_session, user):
        recommendation = SmartSnoozeService(db_session).recommend(
            user.id, now=MONDAY.replace(hour=16)
        )

        assert "later_today" not in candidate_types(recommendation)
        next_week = recommendation.candidates[3]
        assert next_week.type.value == "next_week"
        assert next_week.scheduled_time == datetime(2026, 10, 26, 9, 0)

    def test_history_favours_usual_snooze_length(self, db_session, user):
        service = SmartSnoozeService(db_session)
        for day in (1, 2, 3):
            service.log_snooze(user.id, 23 * 60, now=MONDAY - timedelta(days=day))

        recommendation = service.recommend(user.id, now=MONDAY.replace(hour=10))

        assert recommendation.recommended.type.value == "tomorrow_morning"
        scores = {c.type.value: c.score for c in recommendation.candidates}
        assert scores["tomorrow_morning"] == 100
        assert scores["later_today"] == 95
        assert scores["in_3_days"] == 80

    def test_capped_day_ranks_last(self, db_session, user, set_snooze_preferences):
        set_snooze_preferences(max_reminders_per_day=1)
        log_event(
            db_session,
            user.id,
            EventType.REMINDER_SENT,
            {"reminder_id": 1},
            created_at=MONDAY.replace(hour=9, minute=30),
        )

        recommendation = SmartSnoozeService(db_session).recommend(
            user.id, now=MONDAY.replace(hour=10)
        )

        assert "later_today" not in candidate_types(recommendation)
        assert recommendation.recommended.type.value == "tomorrow_morning"

    def test_logs_snooze_suggested(self, db_session, user):
        SmartSnoozeService(db_session).recommend(
            user.id, context_type="email_opened", now=MONDAY.replace(hour=10)
        )

        events = query_events(db_session, user.id, event_types=[EventType.SNOOZE_SUGGESTED])
        assert len(events) == 1
        data = events[0].event_data
        assert data["context_type"] == "email_opened"
        assert data["recommended_type"] == "later_today"
        assert len(data["candidates"]) == 6
        assert data["candidates"][0]["scheduled_time"] == "2026-10-19T12:00:00"
        assert data["candidates"][0]["score"] == 95

    def test_disabled_offers_times_without_recommendation(
        self, db_session, user, set_snooze_preferences
    ):
        set_snooze_preferences(smart_suggestions_enabled=False)

        recommendation = SmartSnoozeService(db_session).recommend(
            user.id, now=MONDAY.replace(hour=10)
        )

        assert recommendation.recommended is None
        assert not any(c.recommended for c in recommendation.candidates)
        assert len(recommendation.candidates) == 6
