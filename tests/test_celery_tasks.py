"""Tests for Celery tasks."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from followup.celery_app import app as celery_app
from followup.clock import utcnow
from followup.models.reminder import ReminderStatus
from followup.services.scheduling import CeleryReminderScheduler
from followup.tasks import activity_tasks, popup_tasks, reminder_tasks


@pytest.fixture
def task_sessions(monkeypatch, session_factory):
    """Point every task module at the test database."""
    for module in (reminder_tasks, popup_tasks, activity_tasks):
        monkeypatch.setattr(module, "SessionLocal", session_factory)
    return session_factory


class TestBeatSchedule:
    def test_periodic_tasks_registered(self):
        scheduled = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
        assert scheduled == {
            "followup.tasks.reminder_tasks.dispatch_due_reminders",
            "followup.tasks.reminder_tasks.check_overdue_reminders",
            "followup.tasks.popup_tasks.expire_popups",
            "followup.tasks.activity_tasks.check_inactivity",
        }

    def test_serialization_is_json(self):
        assert celery_app.conf.task_serializer == "json"
        assert celery_app.conf.enable_utc is True


class TestCeleryReminderScheduler:
    def test_schedule_uses_aware_eta(self):
        at = datetime(2026, 10, 19, 10, 0)
        with patch.object(reminder_tasks.fire_reminder, "apply_async") as apply_async:
            CeleryReminderScheduler().schedule(7, at)

        apply_async.assert_called_once_with(
            args=[7], eta=datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
        )


class TestReminderTasks:
    def test_fire_missing_reminder(self, task_sessions):
        result = reminder_tasks.fire_reminder(12345)
        assert result["outcome"] == "missing"

    def test_fire_inactive_reminder_is_skipped(self, task_sessions, make_reminder):
        reminder = make_reminder(utcnow(), status=ReminderStatus.DISMISSED)
        result = reminder_tasks.fire_reminder(reminder.id)
        assert result["outcome"] == "skipped"

    def test_dispatch_due_reminders_queues_active_due(self, task_sessions, make_reminder):
        due = make_reminder(utcnow() - timedelta(minutes=1))
        make_reminder(utcnow() + timedelta(hours=1))
        make_reminder(utcnow() - timedelta(minutes=1), status=ReminderStatus.SENT)

        with patch.object(reminder_tasks.fire_reminder, "delay") as delay:
            result = reminder_tasks.dispatch_due_reminders()

        assert result == {"queued": 1}
        delay.assert_called_once_with(due.id)

    def test_check_overdue_reminders(self, task_sessions, make_reminder):
        make_reminder(utcnow() - timedelta(hours=1))
        result = reminder_tasks.check_overdue_reminders()
        assert result["logged"] == 1


class TestMaintenanceTasks:
    def test_expire_popups_with_nothing_queued(self, task_sessions):
        assert popup_tasks.expire_popups() == {"expired": 0}

    def test_check_inactivity_without_activity(self, task_sessions, user):
        assert activity_tasks.check_inactivity() == {"idle_users": 0, "logged": 0}
