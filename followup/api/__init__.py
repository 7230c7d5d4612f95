"""API routers."""

from followup.api.affirmations import router as affirmations_router
from followup.api.bundles import router as bundles_router
from followup.api.events import router as events_router
from followup.api.health import router as health_router
from followup.api.notifications import router as notifications_router
from followup.api.popups import router as popups_router
from followup.api.preferences import router as preferences_router
from followup.api.reminders import router as reminders_router
from followup.api.snooze import router as snooze_router
from followup.api.users import router as users_router

__all__ = [
    "affirmations_router",
    "bundles_router",
    "events_router",
    "health_router",
    "notifications_router",
    "popups_router",
    "preferences_router",
    "reminders_router",
    "snooze_router",
    "users_router",
]
