"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"

from followup import models  # noqa: E402, F401
from followup.database import Base, get_db  # noqa: E402
from followup.main import app  # noqa: E402
from followup.models.contact import Contact  # noqa: E402
from followup.models.reminder import Reminder, ReminderStatus  # noqa: E402
from followup.models.user import User  # noqa: E402
from followup.schemas.preferences import SnoozePreferencesUpdate  # noqa: E402
from followup.services.preferences import PreferenceStore  # noqa: E402
from followup.services.scheduling import get_scheduler  # noqa: E402


class RecordingScheduler:
    """Scheduler double that remembers every callback it was asked for."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, datetime]] = []

    def schedule(self, reminder_id: int, at: datetime) -> None:
        self.calls.append((reminder_id, at))


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared by every connection in a test."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def client(db_session: Session, scheduler: RecordingScheduler) -> Generator[TestClient, None, None]:
    """Create a test client with database and scheduler overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session: Session) -> User:
    user = User(name="Test User", timezone="UTC", ntfy_topic="test-topic")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def contact(db_session: Session, user: User) -> Contact:
    contact = Contact(user_id=user.id, name="Dana Client", email="dana@example.com")
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact


@pytest.fixture
def make_reminder(db_session: Session, user: User) -> Callable[..., Reminder]:
    """Factory for reminders owned by the default test user."""

    def _make(
        scheduled_time: datetime,
        message: str = "Send the proposal",
        status: ReminderStatus = ReminderStatus.PENDING,
        **kwargs,
    ) -> Reminder:
        reminder = Reminder(
            user_id=kwargs.pop("user_id", user.id),
            message=message,
            scheduled_time=scheduled_time,
            status=status.value,
            **kwargs,
        )
        db_session.add(reminder)
        db_session.commit()
        db_session.refresh(reminder)
        return reminder

    return _make


@pytest.fixture
def set_snooze_preferences(db_session: Session, user: User) -> Callable[..., None]:
    """Store snooze preferences for the default test user."""

    def _set(**values) -> None:
        PreferenceStore(db_session).update_snooze_preferences(
            user.id, SnoozePreferencesUpdate(**values)
        )

    return _set
