"""Notification API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from followup.services.notifications import NotificationService, get_notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.post("/test")
async def send_test_notification(
    topic: str | None = None,
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    """Send a test notification to verify ntfy is working."""
    result = await service.send_test_notification(topic)

    if not result["success"]:
        raise HTTPException(status_code=500, detail=result.get("error", "Failed to send"))

    return {"status": "sent", "message": "Test notification sent successfully"}
