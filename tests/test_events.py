"""Tests for the event log."""

from datetime import datetime, timedelta

import pytest

from followup.models.event import EventSource, EventType
from followup.schemas.event import validate_event_data
from followup.services.events import has_event, last_event_at, log_event, query_events

NOW = datetime(2026, 10, 19, 10, 0)


class TestValidateEventData:
    def test_known_keys_are_typed(self):
        data = validate_event_data(
            "reminder_due", {"reminder_id": "3", "scheduled_time": "2026-10-19T10:00:00"}
        )
        assert data == {"reminder_id": 3, "scheduled_time": "2026-10-19T10:00:00"}

    def test_extra_keys_kept(self):
        data = validate_event_data("email_opened", {"contact_name": "Dana", "thread_url": "x"})
        assert data["thread_url"] == "x"

    def test_missing_required_key(self):
        with pytest.raises(ValueError):
            validate_event_data("reminder_suppressed", {"reason": "quiet_hours"})

    def test_unknown_event_type(self):
        with pytest.raises(ValueError):
            validate_event_data("not_an_event", {})


class TestEventLog:
    def test_log_takes_reminder_id_from_payload(self, db_session, user):
        event = log_event(db_session, user.id, EventType.REMINDER_DUE, {"reminder_id": 8})
        assert event.reminder_id == 8
        assert event.source == EventSource.APP.value

    def test_invalid_payload_is_not_stored(self, db_session, user):
        with pytest.raises(ValueError):
            log_event(db_session, user.id, EventType.STREAK_ACHIEVED, {"streak_days": "many"})
        assert query_events(db_session, user.id) == []

    def test_query_newest_first_with_filters(self, db_session, user):
        for minutes, event_type in [
            (0, EventType.REMINDER_SENT),
            (5, EventType.REMINDER_COMPLETED),
            (10, EventType.REMINDER_SENT),
        ]:
            log_event(
                db_session,
                user.id,
                event_type,
                {"reminder_id": minutes},
                created_at=NOW + timedelta(minutes=minutes),
            )

        sent = query_events(db_session, user.id, event_types=[EventType.REMINDER_SENT])
        assert [e.reminder_id for e in sent] == [10, 0]

        window = query_events(
            db_session, user.id, since=NOW + timedelta(minutes=1), until=NOW + timedelta(minutes=10)
        )
        assert [e.reminder_id for e in window] == [5]

        assert has_event(db_session, user.id, EventType.REMINDER_COMPLETED, reminder_id=5)
        assert not has_event(db_session, user.id, EventType.REMINDER_COMPLETED, reminder_id=0)
        assert last_event_at(db_session, user.id) == NOW + timedelta(minutes=10)
