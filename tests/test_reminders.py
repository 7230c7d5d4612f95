"""Tests for reminder endpoints."""

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from followup.clock import utcnow
from followup.services.suppression import SuppressionEngine


def create_reminder(client: TestClient, user_id: int, **overrides) -> dict:
    payload = {
        "user_id": user_id,
        "message": "Send the proposal",
        "scheduled_time": (utcnow() + timedelta(hours=1)).isoformat(),
    }
    payload.update(overrides)
    response = client.post("/api/v1/reminders/", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_reminder_schedules_callback(client: TestClient, scheduler, user):
    """Test creating a reminder."""
    data = create_reminder(client, user.id)

    assert data["status"] == "pending"
    assert data["notification_method"] == "push"
    assert len(scheduler.calls) == 1
    assert scheduler.calls[0][0] == data["id"]


def test_create_reminder_user_not_found(client: TestClient):
    response = client.post(
        "/api/v1/reminders/",
        json={"user_id": 99999, "message": "Test", "scheduled_time": utcnow().isoformat()},
    )
    assert response.status_code == 404


def test_create_reminder_with_foreign_contact(client: TestClient, user):
    other_id = client.post("/api/v1/users/", json={"name": "Other"}).json()["id"]
    contact_id = client.post(
        f"/api/v1/users/{other_id}/contacts", json={"name": "Not yours"}
    ).json()["id"]

    response = client.post(
        "/api/v1/reminders/",
        json={
            "user_id": user.id,
            "message": "Call",
            "scheduled_time": utcnow().isoformat(),
            "contact_id": contact_id,
        },
    )
    assert response.status_code == 404


def test_list_and_upcoming(client: TestClient, user):
    upcoming = create_reminder(client, user.id)
    create_reminder(
        client, user.id, scheduled_time=(utcnow() - timedelta(hours=1)).isoformat()
    )

    all_reminders = client.get("/api/v1/reminders/", params={"user_id": user.id}).json()
    assert len(all_reminders) == 2

    response = client.get("/api/v1/reminders/upcoming", params={"user_id": user.id})
    assert [r["id"] for r in response.json()] == [upcoming["id"]]


def test_reschedule_via_patch(client: TestClient, scheduler, user):
    reminder = create_reminder(client, user.id)
    new_time = utcnow() + timedelta(days=1)

    response = client.patch(
        f"/api/v1/reminders/{reminder['id']}", json={"scheduled_time": new_time.isoformat()}
    )

    assert response.status_code == 200
    assert len(scheduler.calls) == 2
    assert abs(scheduler.calls[-1][1] - new_time) < timedelta(seconds=1)


def test_evaluate_is_a_dry_run(client: TestClient, user):
    reminder = create_reminder(client, user.id)

    response = client.get(
        f"/api/v1/reminders/{reminder['id']}/evaluate",
        params={"at": "2026-10-24T10:00:00"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["suppressed"] is True
    assert data["next_attempt_time"] == "2026-10-26T09:00:00"

    events = client.get(
        "/api/v1/events/",
        params={"user_id": user.id, "event_type": "reminder_suppressed"},
    ).json()
    assert events == []


def test_snooze_explicit_minutes(client: TestClient, scheduler, user):
    reminder = create_reminder(client, user.id)

    response = client.post(f"/api/v1/reminders/{reminder['id']}/snooze", json={"minutes": 15})

    assert response.status_code == 200
    assert response.json()["status"] == "snoozed"
    history = client.get("/api/v1/snooze/history", params={"user_id": user.id}).json()
    assert history[0]["duration_minutes"] == 15
    assert history[0]["reason"] == "user_action"
    assert len(scheduler.calls) == 2


def test_snooze_uses_suggestion(client: TestClient, user):
    reminder = create_reminder(client, user.id)

    response = client.post(
        f"/api/v1/reminders/{reminder['id']}/snooze", json={"use_suggestion": True}
    )

    assert response.status_code == 200
    history = client.get("/api/v1/snooze/history", params={"user_id": user.id}).json()
    assert history[0]["duration_minutes"] == 10
    assert history[0]["reason"] == "smart_suggestion"


def test_dismissed_reminder_cannot_be_snoozed(client: TestClient, user):
    reminder = create_reminder(client, user.id)
    dismissed = client.post(f"/api/v1/reminders/{reminder['id']}/dismiss")
    assert dismissed.json()["status"] == "dismissed"

    response = client.post(f"/api/v1/reminders/{reminder['id']}/snooze", json={"minutes": 5})
    assert response.status_code == 400


def test_complete_reminder_queues_popup(client: TestClient, user):
    reminder = create_reminder(client, user.id)

    response = client.post(f"/api/v1/reminders/{reminder['id']}/complete")

    assert response.status_code == 200
    assert response.json()["status"] == "sent"
    popups = client.get("/api/v1/popups/", params={"user_id": user.id}).json()
    assert [p["rule_key"] for p in popups] == ["default:reminder_completed"]


def test_audit_timeline_explains_suppression(client: TestClient, db_session, user, make_reminder):
    saturday = datetime(2026, 10, 24, 11, 0)
    reminder = make_reminder(saturday)
    SuppressionEngine(db_session).evaluate(user.id, reminder.id, saturday)
    client.post(f"/api/v1/reminders/{reminder.id}/dismiss")

    response = client.get(f"/api/v1/reminders/{reminder.id}/audit")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "dismissed"
    assert [e["label"] for e in data["timeline"]] == ["Dismissed", "Suppressed"]

    suppressed = data["timeline"][1]
    assert suppressed["description"] == "Weekend reminders are disabled"
    assert suppressed["suppression"]["rule_name"] == "Weekend Settings"
    assert suppressed["suppression"]["intended_fire_time"] == "2026-10-24T11:00:00"
    assert suppressed["suppression"]["next_attempt_time"] == "2026-10-26T09:00:00"
    assert data["last_suppression"]["reason_code"] == "weekend"


def test_audit_unknown_reminder(client: TestClient):
    assert client.get("/api/v1/reminders/999/audit").status_code == 404


def test_snooze_suggestions_endpoint(client: TestClient, user):
    reminder = create_reminder(client, user.id)

    response = client.get(
        "/api/v1/snooze/suggestions",
        params={"user_id": user.id, "reminder_id": reminder["id"], "event_type": "reminder_due"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["context_type"] == "reminder_due"
    assert data["candidates"][-1]["type"] == "pick_a_time"
    assert all(0 <= c["score"] <= 100 for c in data["candidates"])

    events = client.get(
        "/api/v1/events/", params={"user_id": user.id, "event_type": "snooze_suggested"}
    )
    assert events.status_code == 200
    assert [e["reminder_id"] for e in events.json()] == [reminder["id"]]
