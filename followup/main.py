"""FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from followup.api import (
    affirmations_router,
    bundles_router,
    events_router,
    health_router,
    notifications_router,
    popups_router,
    preferences_router,
    reminders_router,
    snooze_router,
    users_router,
)
from followup.config import get_settings
from followup.database import SessionLocal
from followup.services.affirmations import seed_affirmations

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Run alembic migrations on startup."""
    # Skip migrations during testing
    if os.environ.get("TESTING") == "1":
        logger.info("Skipping migrations in test mode")
        return

    try:
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
    except Exception as e:
        logger.error(f"Failed to run migrations: {e}")
        raise


def seed_catalogue() -> None:
    """Load the built-in affirmations into an empty catalogue."""
    if os.environ.get("TESTING") == "1":
        return

    db = SessionLocal()
    try:
        seed_affirmations(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    run_migrations()
    seed_catalogue()
    yield


app = FastAPI(
    title="Follow-up API",
    description="Reminder delivery, suppression, bundling, smart snooze and popups",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for PWA access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(users_router)
app.include_router(preferences_router)
app.include_router(reminders_router)
app.include_router(bundles_router)
app.include_router(snooze_router)
app.include_router(events_router)
app.include_router(popups_router)
app.include_router(affirmations_router)
app.include_router(notifications_router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Follow-up API",
        "version": "0.1.0",
        "docs": "/docs",
    }
