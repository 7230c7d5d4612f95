"""Integration tests for notification API endpoints."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient


class TestNotificationEndpoints:
    """Tests for notification API endpoints."""

    def test_send_test_notification_success(self, client: TestClient):
        with patch(
            "followup.services.notifications.NotificationService.send_test_notification",
            new_callable=AsyncMock,
            return_value={"success": True},
        ) as send:
            response = client.post("/api/v1/notifications/test", params={"topic": "mine"})

        assert response.status_code == 200
        assert response.json()["status"] == "sent"
        send.assert_awaited_once_with("mine")

    def test_send_test_notification_failure(self, client: TestClient):
        with patch(
            "followup.services.notifications.NotificationService.send_test_notification",
            new_callable=AsyncMock,
            return_value={"success": False, "error": "Connection refused"},
        ):
            response = client.post("/api/v1/notifications/test")

        assert response.status_code == 500
        assert response.json()["detail"] == "Connection refused"
