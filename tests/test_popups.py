"""Tests for the popup trigger and queue engine."""

from datetime import datetime, timedelta

import pytest

from followup.models.event import EventType
from followup.models.popup import Popup, PopupAction, PopupRule, PopupStatus
from followup.models.reminder import ReminderStatus
from followup.models.snooze_history import SnoozeHistory
from followup.schemas.popup import PopupRuleCreate, PopupRuleUpdate
from followup.services.events import log_event, query_events
from followup.services.popups import PopupEngine, clamp_priority, normalize_action

NOW = datetime(2026, 10, 19, 10, 0)


@pytest.fixture
def engine(db_session, scheduler) -> PopupEngine:
    return PopupEngine(db_session, scheduler=scheduler)


@pytest.fixture
def make_popup(db_session, user):
    def _make(priority: int = 5, queued_at: datetime = NOW, **kwargs) -> Popup:
        popup = Popup(
            user_id=user.id,
            rule_key=kwargs.pop("rule_key", "default:follow_up_required"),
            template_type="follow_up_required",
            template_key="follow_up_required",
            title="Follow-up needed",
            message="You have reminders that need attention.",
            priority=priority,
            status=kwargs.pop("status", PopupStatus.QUEUED.value),
            queued_at=queued_at,
            payload={},
            **kwargs,
        )
        db_session.add(popup)
        db_session.commit()
        db_session.refresh(popup)
        return popup

    return _make


class TestHelpers:
    def test_clamp_priority(self):
        assert clamp_priority(0) == 1
        assert clamp_priority(15) == 10
        assert clamp_priority(None, default=4) == 4

    def test_normalize_action(self):
        assert normalize_action("complete").value == "MARK_DONE"
        assert normalize_action(" snooze ").value == "SNOOZE"
        with pytest.raises(ValueError):
            normalize_action("ARCHIVE")


class TestTriggering:
    def test_builtin_mapping_queues_popup(self, db_session, engine, user, contact):
        event = log_event(
            db_session,
            user.id,
            EventType.EMAIL_OPENED,
            {"thread_url": "https://mail.example.com/t/1"},
            contact_id=contact.id,
            created_at=NOW - timedelta(minutes=5),
        )

        popups = engine.handle_event(event, now=NOW)

        assert len(popups) == 1
        popup = popups[0]
        assert popup.rule_key == "default:email_opened"
        assert popup.priority == 9
        assert popup.message == "Your email to Dana Client was opened 5 minutes ago."
        assert popup.payload["action_url"] == "https://mail.example.com/t/1"
        assert popup.expires_at == NOW + timedelta(days=1)

    def test_same_event_never_queues_twice(self, db_session, engine, user):
        event = log_event(db_session, user.id, EventType.FOLLOW_UP_REQUIRED, {})
        assert len(engine.handle_event(event, now=NOW)) == 1
        assert engine.handle_event(event, now=NOW) == []

    def test_rule_cooldown(self, db_session, engine, user):
        first = log_event(db_session, user.id, EventType.EMAIL_OPENED, {})
        second = log_event(db_session, user.id, EventType.EMAIL_OPENED, {})

        assert len(engine.handle_event(first, now=NOW)) == 1
        assert engine.handle_event(second, now=NOW + timedelta(minutes=10)) == []

    def test_user_rule_replaces_builtin(self, db_session, engine, user):
        rule = engine.create_rule(
            PopupRuleCreate(
                user_id=user.id,
                rule_name="Big deals only",
                trigger_event_type=EventType.EMAIL_OPENED,
                template_key="email_opened",
                priority=10,
                conditions={"match": {"deal_size": "large"}},
            )
        )
        small = log_event(db_session, user.id, EventType.EMAIL_OPENED, {"deal_size": "small"})
        large = log_event(db_session, user.id, EventType.EMAIL_OPENED, {"deal_size": "large"})

        assert engine.handle_event(small, now=NOW) == []
        popups = engine.handle_event(large, now=NOW)
        assert popups[0].rule_key == f"rule:{rule.id}"
        assert popups[0].priority == 10

    def test_rule_with_unknown_template_rejected(self, engine, user):
        with pytest.raises(ValueError):
            engine.create_rule(
                PopupRuleCreate(
                    user_id=user.id,
                    rule_name="Broken",
                    trigger_event_type=EventType.EMAIL_OPENED,
                    template_key="fireworks",
                )
            )

    def test_update_and_delete_rule(self, db_session, engine, user):
        rule = engine.create_rule(
            PopupRuleCreate(
                user_id=user.id,
                rule_name="Nudge",
                trigger_event_type=EventType.FOLLOW_UP_REQUIRED,
                template_key="follow_up_required",
            )
        )
        updated = engine.update_rule(rule.id, PopupRuleUpdate(priority=2, enabled=False))
        assert updated.priority == 2
        assert updated.enabled is False

        assert engine.delete_rule(rule.id) is True
        assert db_session.get(PopupRule, rule.id) is None
        assert engine.delete_rule(rule.id) is False


class TestQueue:
    def test_dequeue_by_priority_then_fifo(self, engine, user, make_popup):
        low = make_popup(priority=5, queued_at=NOW - timedelta(minutes=30))
        later = make_popup(priority=8, queued_at=NOW - timedelta(minutes=5))
        earlier = make_popup(priority=8, queued_at=NOW - timedelta(minutes=10))

        order = []
        for _ in range(3):
            popup, did_transition = engine.get_next_popup(user.id, now=NOW)
            assert did_transition is True
            order.append(popup.id)

        assert order == [earlier.id, later.id, low.id]
        assert engine.get_next_popup(user.id, now=NOW) == (None, False)

    def test_claimed_popup_is_displayed(self, engine, user, make_popup):
        make_popup()
        popup, _ = engine.get_next_popup(user.id, now=NOW)
        assert popup.status == PopupStatus.DISPLAYED.value
        assert popup.displayed_at == NOW

    def test_claim_loses_after_concurrent_transition(self, db_session, engine, make_popup):
        popup = make_popup()
        db_session.query(Popup).filter(Popup.id == popup.id).update(
            {"status": PopupStatus.DISPLAYED.value}, synchronize_session=False
        )
        db_session.commit()
        # The in-memory row still reads "queued", like a caller that lost the race
        popup.status = PopupStatus.QUEUED.value

        assert engine._claim(popup, NOW) is False

    def test_expired_popups_are_skipped(self, engine, user, make_popup):
        make_popup(expires_at=NOW - timedelta(minutes=1))
        assert engine.get_next_popup(user.id, now=NOW) == (None, False)

    def test_snoozed_popup_returns_after_snooze(self, engine, user, make_popup):
        popup = make_popup()
        engine.snooze_popup(popup.id, 15, now=NOW)

        assert engine.get_next_popup(user.id, now=NOW + timedelta(minutes=5)) == (None, False)
        claimed, _ = engine.get_next_popup(user.id, now=NOW + timedelta(minutes=15))
        assert claimed.id == popup.id

    def test_shown_popup_gets_affirmation(self, db_session, engine, user, make_popup):
        make_popup()
        popup, _ = engine.get_next_popup(user.id, now=NOW)

        assert popup.affirmation
        shown = query_events(db_session, user.id, event_types=[EventType.POPUP_SHOWN])
        assert len(shown) == 1


class TestActions:
    def test_snooze_moves_popup_and_reminder(
        self, db_session, engine, scheduler, user, make_reminder, make_popup
    ):
        reminder = make_reminder(NOW - timedelta(minutes=1))
        popup = make_popup(reminder_id=reminder.id, status=PopupStatus.DISPLAYED.value)

        result = engine.apply_action(popup.id, "SNOOZE", {"minutes": 60}, now=NOW)

        assert result.snooze_until == NOW + timedelta(minutes=60)
        assert result.popup.status == PopupStatus.ACTED.value
        db_session.refresh(reminder)
        assert reminder.status == ReminderStatus.SNOOZED.value
        assert reminder.scheduled_time == NOW + timedelta(minutes=60)
        assert scheduler.calls == [(reminder.id, NOW + timedelta(minutes=60))]
        history = db_session.query(SnoozeHistory).one()
        assert history.duration_minutes == 60
        assert db_session.query(PopupAction).filter(PopupAction.popup_id == popup.id).count() == 1

    def test_mark_done_completes_reminder_and_celebrates(
        self, db_session, engine, user, make_reminder, make_popup
    ):
        reminder = make_reminder(NOW - timedelta(minutes=1))
        popup = make_popup(reminder_id=reminder.id)

        result = engine.apply_action(popup.id, "COMPLETE", now=NOW)

        assert result.action_type == "MARK_DONE"
        db_session.refresh(reminder)
        assert reminder.status == ReminderStatus.SENT.value
        success = db_session.query(Popup).filter(Popup.rule_key == "default:reminder_completed")
        assert success.count() == 1

    def test_follow_up_now_returns_action_url(self, engine, make_popup):
        popup = make_popup(reminder_id=42)

        result = engine.apply_action(popup.id, "FOLLOW_UP_NOW", now=NOW)

        assert result.action_url.endswith("/reminders/42")

    def test_missing_reminder_keeps_action_record(self, db_session, engine, make_popup):
        popup = make_popup(reminder_id=999)

        result = engine.apply_action(popup.id, "MARK_DONE", now=NOW)

        assert result.popup.status == PopupStatus.ACTED.value
        assert db_session.query(PopupAction).count() == 1

    def test_closed_popup_rejects_actions(self, engine, make_popup):
        popup = make_popup()
        engine.apply_action(popup.id, "DISMISS", now=NOW)

        with pytest.raises(ValueError):
            engine.apply_action(popup.id, "DISMISS", now=NOW)

    def test_unknown_popup(self, engine):
        assert engine.apply_action(12345, "DISMISS", now=NOW) is None


class TestExpiry:
    def test_expire_only_touches_queued(self, engine, make_popup):
        stale = make_popup(expires_at=NOW - timedelta(minutes=1))
        shown = make_popup(
            expires_at=NOW - timedelta(minutes=1), status=PopupStatus.DISPLAYED.value
        )

        assert engine.expire_popups(now=NOW) == 1
        engine.db.refresh(stale)
        engine.db.refresh(shown)
        assert stale.status == PopupStatus.EXPIRED.value
        assert shown.status == PopupStatus.DISPLAYED.value
