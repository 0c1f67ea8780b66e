"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from timetide.config import get_settings
from timetide.database import close_db, create_tables, get_session_factory, init_db
from timetide.db.models import FocusSession, User
from timetide.users.service import create_user


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Pin settings that tests depend on, regardless of the caller's environment."""
    monkeypatch.setenv("TIMETIDE_TIMEZONE", "UTC")
    monkeypatch.setenv("TIMETIDE_LEVEL_STEP", "100")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database file per test, schema created from ORM metadata."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'timetide.db'}")
    await create_tables()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """A database session for the code under test."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def other_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """A second, independent session for concurrency tests and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """A freshly signed-up user."""
    return await create_user(db_session, "alice", "alice@example.com", "Alice")


@pytest.fixture
def mock_redis() -> MagicMock:
    """Stand-in Redis client that records pub/sub publishes."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def make_session():
    """Build an unsaved FocusSession for pure-function tests."""

    def _make(
        session_type: str = "work",
        minutes: int = 25,
        start: datetime | str | None = None,
        completed: bool = True,
        seconds: int | None = None,
    ) -> FocusSession:
        return FocusSession(
            session_type=session_type,
            duration_minutes=minutes,
            duration_seconds=minutes * 60 if seconds is None else seconds,
            completed=completed,
            start_time=start if start is not None else datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def add_sessions(db_session: AsyncSession):
    """Persist completed sessions for a user directly, bypassing the scoring flow."""

    async def _add(
        user_id: int,
        starts: list[datetime],
        session_type: str = "work",
        minutes: int = 25,
    ) -> list[FocusSession]:
        rows = [
            FocusSession(
                user_id=user_id,
                session_type=session_type,
                duration_minutes=minutes,
                duration_seconds=minutes * 60,
                completed=True,
                start_time=start,
                end_time=start + timedelta(minutes=minutes),
                points_earned=0,
                created_at=start,
            )
            for start in starts
        ]
        db_session.add_all(rows)
        await db_session.commit()
        return rows

    return _add
