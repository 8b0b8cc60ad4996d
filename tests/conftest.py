"""
Pytest configuration and fixtures for Visitor Calendar Sync tests.

Provides settings, async database session fixtures and sample data for
testing.
"""

import os

# Keep the module-level engine in src.database off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import Settings, get_settings
from src.integrations.base import CalendarEvent
from src.integrations.tokens import (
    GoogleCalendarToken,
    OutlookCalendarToken,
    now_epoch_millis,
)
from src.models.base import Base


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start each test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """
    Settings with both providers configured.

    Returns:
        Settings: Independent of any .env file
    """
    return Settings(
        _env_file=None,
        app_url="https://visitors.example.com",
        google_client_id="google-client-id",
        google_client_secret="google-client-secret",
        outlook_client_id="outlook-client-id",
        outlook_client_secret="outlook-client-secret",
    )


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a clean async database session for each test.

    Uses an in-memory SQLite database that is torn down after each test.

    Yields:
        AsyncSession: SQLAlchemy async session for database operations
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    async with TestingSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def sample_event() -> CalendarEvent:
    """
    A one-hour visitor meeting.

    Returns:
        CalendarEvent: Meeting with one visitor attendee
    """
    return CalendarEvent(
        title="Visitor: Jane Smith",
        start_time=datetime(2026, 11, 3, 14, 0, tzinfo=timezone.utc),
        end_time=datetime(2026, 11, 3, 15, 0, tzinfo=timezone.utc),
        description="Site tour with facilities",
        location="Lobby, Building A",
        attendees=["jane.smith@example.com"],
    )


@pytest.fixture
def google_token() -> GoogleCalendarToken:
    """A Google token valid for the next hour."""
    return GoogleCalendarToken(
        access_token="google-access",
        refresh_token="google-refresh",
        expiry_epoch_millis=now_epoch_millis() + 3600 * 1000,
        scope="https://www.googleapis.com/auth/calendar",
    )


@pytest.fixture
def expired_google_token() -> GoogleCalendarToken:
    """A Google token that expired a minute ago."""
    return GoogleCalendarToken(
        access_token="google-stale",
        refresh_token="google-refresh",
        expiry_epoch_millis=now_epoch_millis() - 60 * 1000,
    )


@pytest.fixture
def outlook_token() -> OutlookCalendarToken:
    """An Outlook token valid for the next hour."""
    return OutlookCalendarToken(
        access_token="outlook-access",
        refresh_token="outlook-refresh",
        expiry_epoch_millis=now_epoch_millis() + 3600 * 1000,
    )
