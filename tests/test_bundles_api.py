"""Tests for bundle and affirmation endpoints."""

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

MONDAY = datetime(2026, 10, 19, 10, 0)


def test_check_creates_bundle(client: TestClient, user, make_reminder):
    first = make_reminder(MONDAY, message="Call Sam")
    second = make_reminder(MONDAY + timedelta(minutes=2), message="Email Priya")

    response = client.post("/api/v1/bundles/check", params={"reminder_id": first.id})

    assert response.status_code == 200
    result = response.json()
    assert result["should_bundle"] is True
    assert sorted(result["reminder_ids"]) == [first.id, second.id]

    bundles = client.get("/api/v1/bundles/", params={"user_id": user.id}).json()
    assert [b["id"] for b in bundles] == [result["bundle_id"]]
    assert bundles[0]["delivered"] is False

    preview = client.get(f"/api/v1/bundles/{result['bundle_id']}/message").json()
    assert preview["message"] == "You have 2 reminders due:\n\n1. Call Sam\n2. Email Priya"


def test_check_without_conflicts(client: TestClient, make_reminder):
    reminder = make_reminder(MONDAY)
    response = client.post("/api/v1/bundles/check", params={"reminder_id": reminder.id})
    assert response.json() == {"should_bundle": False, "bundle_id": None, "reminder_ids": []}


def test_bundle_not_found(client: TestClient):
    assert client.get("/api/v1/bundles/999").status_code == 404


def test_select_affirmation_then_cooldown(client: TestClient, user):
    first = client.post("/api/v1/affirmations/select", json={"user_id": user.id})
    assert first.status_code == 200
    assert first.json()["text"]

    second = client.post("/api/v1/affirmations/select", json={"user_id": user.id})
    assert second.json() is None

    catalogue = client.get("/api/v1/affirmations/", params={"category": "focus"}).json()
    assert len(catalogue) == 5
