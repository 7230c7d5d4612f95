"""Tests for preference endpoints."""

from fastapi.testclient import TestClient


def test_snooze_preferences_roundtrip(client: TestClient, user):
    url = f"/api/v1/users/{user.id}/preferences/snooze"

    defaults = client.get(url).json()
    assert defaults["working_hours_start"] == "09:00:00"
    assert defaults["bundle_format"] == "list"

    updated = client.put(url, json={"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"})
    assert updated.status_code == 200
    assert updated.json()["quiet_hours_start"] == "22:00:00"

    reset = client.delete(url).json()
    assert reset["quiet_hours_start"] is None


def test_invalid_working_days(client: TestClient, user):
    response = client.put(
        f"/api/v1/users/{user.id}/preferences/snooze", json={"working_days": [9]}
    )
    assert response.status_code == 422


def test_category_preferences(client: TestClient, user):
    base = f"/api/v1/users/{user.id}/preferences/categories"

    listed = client.get(base).json()
    assert [p["category"] for p in listed] == ["follow_up", "affirmation", "generic"]

    response = client.put(f"{base}/generic", json={"enabled": False})
    assert response.status_code == 200
    assert response.json()["enabled"] is False


def test_affirmation_preferences(client: TestClient, user):
    url = f"/api/v1/users/{user.id}/preferences/affirmations"

    response = client.put(url, json={"tone_preference": "calm", "daily_cap": 3})

    assert response.status_code == 200
    assert client.get(url).json()["daily_cap"] == 3
    assert client.put(url, json={"tone_preference": "loud"}).status_code == 422


def test_preferences_for_unknown_user(client: TestClient):
    assert client.get("/api/v1/users/4242/preferences/snooze").status_code == 404
