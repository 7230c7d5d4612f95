"""Notification service for sending push notifications via ntfy."""

import logging
from typing import Any

import httpx

from followup.config import get_settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending push notifications via ntfy.sh."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.server = self.settings.ntfy_server
        self.topic = self.settings.ntfy_topic
        self.pwa_base_url = self.settings.pwa_base_url
        self.timeout = 10.0

    def _get_notification_url(self, topic: str | None = None) -> str:
        """Get the full ntfy URL for publishing."""
        return f"{self.server}/{topic or self.topic}"

    def get_reminder_url(self, reminder_id: int | None = None) -> str:
        """Get the PWA URL for a specific reminder, or the reminder list."""
        if reminder_id is None:
            return f"{self.pwa_base_url}/reminders"
        return f"{self.pwa_base_url}/reminders/{reminder_id}"

    async def send(
        self,
        recipient: str | None,
        title: str,
        body: str,
        affirmation: str | None = None,
        click_url: str | None = None,
    ) -> dict[str, Any]:
        """Publish one notification.

        Args:
            recipient: ntfy topic; falls back to the configured topic
            title: Notification title
            body: Notification text
            affirmation: Optional line appended under the body
            click_url: Page opened when the notification is tapped

        Returns:
            dict with success status and any error info
        """
        content = body if not affirmation else f"{body}\n\n{affirmation}"
        headers = {
            "Title": title,
            "Priority": "high",
            "Tags": "bell",
        }
        if click_url:
            headers["Click"] = click_url
            headers["Actions"] = f"view, Open, {click_url}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._get_notification_url(recipient),
                    content=content,
                    headers=headers,
                )
                response.raise_for_status()

                logger.info(f"Sent notification '{title}'")
                return {"success": True, "click_url": click_url}

        except httpx.HTTPError as e:
            logger.error(f"Failed to send notification '{title}': {e}")
            return {"success": False, "error": str(e)}

    async def send_test_notification(self, recipient: str | None = None) -> dict[str, Any]:
        """Send a test notification to verify ntfy is working.

        Returns:
            dict with success status
        """
        headers = {
            "Title": "Follow-up Test",
            "Priority": "low",
            "Tags": "white_check_mark",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._get_notification_url(recipient),
                    content="Test notification - ntfy is working!",
                    headers=headers,
                )
                response.raise_for_status()

                logger.info("Sent test notification")
                return {"success": True}

        except httpx.HTTPError as e:
            logger.error(f"Failed to send test notification: {e}")
            return {"success": False, "error": str(e)}


def get_notification_service() -> NotificationService:
    """Get a notification service instance."""
    return NotificationService()
