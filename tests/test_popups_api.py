"""Tests for popup queue endpoints."""

from fastapi.testclient import TestClient


def ingest(client: TestClient, user_id: int, event_type: str, event_data: dict) -> dict:
    response = client.post(
        "/api/v1/events/",
        json={"user_id": user_id, "event_type": event_type, "event_data": event_data},
    )
    assert response.status_code == 201
    return response.json()


def test_event_ingest_queues_popup(client: TestClient, user):
    result = ingest(client, user.id, "follow_up_required", {"contact_name": "Sam"})

    assert result["event"]["event_type"] == "follow_up_required"
    assert result["event"]["source"] == "client"
    assert len(result["popup_ids"]) == 1


def test_invalid_event_payload(client: TestClient, user):
    response = client.post(
        "/api/v1/events/",
        json={"user_id": user.id, "event_type": "popup_shown", "event_data": {}},
    )
    assert response.status_code == 400


def test_next_popup_is_claimed_once(client: TestClient, user):
    popup_id = ingest(client, user.id, "follow_up_required", {"contact_name": "Sam"})[
        "popup_ids"
    ][0]

    first = client.get("/api/v1/popups/next", params={"user_id": user.id}).json()
    assert first["did_transition"] is True
    assert first["popup"]["id"] == popup_id
    assert first["popup"]["status"] == "displayed"

    second = client.get("/api/v1/popups/next", params={"user_id": user.id}).json()
    assert second == {"popup": None, "did_transition": False}


def test_popup_action_dismiss(client: TestClient, user):
    popup_id = ingest(client, user.id, "follow_up_required", {"contact_name": "Sam"})[
        "popup_ids"
    ][0]

    response = client.post(
        f"/api/v1/popups/{popup_id}/action", json={"action_type": "DISMISS"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["action_type"] == "DISMISS"
    assert data["popup"]["status"] == "acted"

    again = client.post(f"/api/v1/popups/{popup_id}/action", json={"action_type": "DISMISS"})
    assert again.status_code == 400


def test_popup_action_not_found(client: TestClient):
    response = client.post("/api/v1/popups/999/action", json={"action_type": "DISMISS"})
    assert response.status_code == 404


def test_rule_lifecycle(client: TestClient, user):
    created = client.post(
        "/api/v1/popups/rules",
        json={
            "user_id": user.id,
            "rule_name": "Big deals only",
            "trigger_event_type": "email_opened",
            "template_key": "email_opened",
            "conditions": {"match": {"deal_size": "large"}},
            "priority": 10,
        },
    )
    assert created.status_code == 201
    rule_id = created.json()["id"]

    rules = client.get("/api/v1/popups/rules", params={"user_id": user.id}).json()
    assert [r["id"] for r in rules] == [rule_id]

    updated = client.patch(f"/api/v1/popups/rules/{rule_id}", json={"enabled": False})
    assert updated.json()["enabled"] is False

    cleared = client.patch(
        f"/api/v1/popups/rules/{rule_id}",
        json={"priority": None, "rule_name": None, "enabled": None, "message": None},
    )
    assert cleared.status_code == 200
    assert cleared.json()["priority"] == 10
    assert cleared.json()["rule_name"] == "Big deals only"
    assert cleared.json()["enabled"] is False
    assert cleared.json()["message"] is None

    assert client.delete(f"/api/v1/popups/rules/{rule_id}").status_code == 204
    assert client.delete(f"/api/v1/popups/rules/{rule_id}").status_code == 404


def test_rule_with_unknown_template(client: TestClient, user):
    response = client.post(
        "/api/v1/popups/rules",
        json={
            "user_id": user.id,
            "rule_name": "Broken",
            "trigger_event_type": "email_opened",
            "template_key": "no_such_template",
        },
    )
    assert response.status_code == 400
