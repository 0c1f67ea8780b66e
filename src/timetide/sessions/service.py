"""Focus session lifecycle: start, complete (scoring + points), history, analytics."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError

from timetide.concurrency import run_optimistic
from timetide.config import get_settings
from timetide.db.models import FocusSession, User
from timetide.exceptions import NotFound, StoreUnavailable
from timetide.gamification.definitions import ordered_badge_names
from timetide.gamification.level_thresholds import raise_level
from timetide.gamification.notifications import publish_level_up
from timetide.gamification.scoring import SESSION_TYPES, minutes_from_seconds, score_session
from timetide.gamification.time_utils import coerce_start_time, local_date, resolve_timezone, round_half_up
from timetide.sessions.schemas import (
    AnalyticsResponse,
    CompletionResult,
    DailyActivity,
    SessionOut,
    UserSummary,
)
from timetide.users.service import get_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def start_session(
    db: AsyncSession,
    user_id: int,
    session_type: str,
    *,
    task: str | None = None,
    duration_minutes: int | None = None,
    start_time: datetime | None = None,
) -> SessionOut:
    """
    Open a new, not yet completed session for a user.

    Raises:
        ValueError: If session_type is not work, break or longbreak.
        NotFound: If the user does not exist.
    """
    if session_type not in SESSION_TYPES:
        msg = f"Unknown session type: {session_type!r}"
        raise ValueError(msg)

    try:
        await get_user(db, user_id)
        now = datetime.now(timezone.utc)
        focus = FocusSession(
            user_id=user_id,
            session_type=session_type,
            duration_minutes=max(0, duration_minutes or 0),
            duration_seconds=0,
            completed=False,
            start_time=start_time or now,
            task=task.strip() if task else None,
            points_earned=0,
            created_at=now,
        )
        db.add(focus)
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        raise StoreUnavailable(f"start_session failed: {exc}") from exc

    return SessionOut.model_validate(focus)


def _apply_duration(
    focus: FocusSession,
    elapsed_seconds: float | None,
    duration_minutes: float | None,
    end_time: datetime,
) -> None:
    """Fill duration fields: client seconds, else client minutes, else wall clock."""
    if elapsed_seconds is not None and elapsed_seconds > 0:
        focus.duration_seconds = int(elapsed_seconds)
        focus.duration_minutes = minutes_from_seconds(int(elapsed_seconds))
        return
    if duration_minutes is not None and duration_minutes > 0:
        focus.duration_minutes = int(duration_minutes)
        focus.duration_seconds = int(duration_minutes) * 60
        return
    start = coerce_start_time(focus.start_time)
    if start is not None:
        secs = int((end_time - start).total_seconds())
        focus.duration_seconds = max(1, secs)
        focus.duration_minutes = minutes_from_seconds(max(1, secs))


async def complete_session(
    db: AsyncSession,
    user_id: int,
    session_id: int,
    elapsed_seconds: float | None = None,
    *,
    duration_minutes: float | None = None,
    now: datetime | None = None,
    redis: object = None,
    max_attempts: int | None = None,
) -> CompletionResult:
    """Complete a session, freeze its points, and add them to the user's total.

    A session is completed at most once. Completing it again returns the
    stored result without touching the session or the user.

    Raises:
        NotFound: If the user or session does not exist, or the session
            belongs to someone else.
        StoreUnavailable: On database failure (nothing committed).
        ConflictRetriesExhausted: If concurrent writers kept winning.
    """
    settings = get_settings()
    end_time = now or datetime.now(timezone.utc)
    outcome: dict = {}

    async def attempt() -> None:
        result = await db.execute(
            select(FocusSession)
            .where(FocusSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        focus = result.scalar_one_or_none()
        if focus is None or focus.user_id != user_id:
            raise NotFound("session", session_id)
        user = await get_user(db, user_id)

        outcome.update(focus=focus, user=user, old_level=user.level, newly_completed=False)
        if focus.completed:
            return

        focus.completed = True
        focus.end_time = end_time
        _apply_duration(focus, elapsed_seconds, duration_minutes, end_time)
        focus.points_earned = score_session(focus)

        user.points += focus.points_earned
        user.level = raise_level(user.level, user.points, settings.level_step)
        user.updated_at = end_time
        outcome["newly_completed"] = True
        await db.flush()

    await run_optimistic(
        db, "complete_session", user_id, attempt, max_attempts or settings.sync_max_attempts,
    )

    focus: FocusSession = outcome["focus"]
    user: User = outcome["user"]
    if outcome["newly_completed"]:
        logger.info(
            "session_completed",
            user_id=user_id,
            session_id=session_id,
            session_type=focus.session_type,
            duration_seconds=focus.duration_seconds,
            points_earned=focus.points_earned,
        )
        await publish_level_up(redis, user_id, outcome["old_level"], user.level)

    return CompletionResult(
        points_earned=focus.points_earned,
        session=SessionOut.model_validate(focus),
        user=UserSummary(level=user.level, points=user.points, badges=ordered_badge_names(user.badge_names)),
    )


async def get_user_sessions(db: AsyncSession, user_id: int, completed_only: bool = False) -> list[FocusSession]:
    """All sessions of a user, newest first."""
    stmt = select(FocusSession).where(FocusSession.user_id == user_id)
    if completed_only:
        stmt = stmt.where(FocusSession.completed.is_(True))
    result = await db.execute(stmt.order_by(FocusSession.created_at.desc(), FocusSession.id.desc()))
    return list(result.scalars().all())


async def list_sessions(db: AsyncSession, user_id: int) -> list[SessionOut]:
    """A user's session history for display, newest first."""
    try:
        sessions = await get_user_sessions(db, user_id)
    except DBAPIError as exc:
        raise StoreUnavailable(f"list_sessions failed: {exc}") from exc
    return [SessionOut.model_validate(s) for s in sessions]


async def get_analytics(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime | None = None,
    days: int = 7,
    tz: tzinfo | None = None,
) -> AnalyticsResponse:
    """Totals over completed sessions plus a per-day breakdown of the last ``days`` local days."""
    tz = tz or resolve_timezone()
    now = now or datetime.now(timezone.utc)
    try:
        sessions = await get_user_sessions(db, user_id, completed_only=True)
    except DBAPIError as exc:
        raise StoreUnavailable(f"get_analytics failed: {exc}") from exc

    total = len(sessions)
    total_minutes = sum(s.duration_minutes or 0 for s in sessions)
    by_type = Counter(s.session_type for s in sessions)

    per_day: dict = {}
    for s in sessions:
        start = coerce_start_time(s.start_time)
        if start is None:
            continue
        bucket = per_day.setdefault(local_date(start, tz), [0, 0])
        bucket[0] += 1
        bucket[1] += s.duration_minutes or 0

    today = local_date(now, tz)
    last_days = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        count, minutes = per_day.get(day, (0, 0))
        last_days.append(DailyActivity(date=day, sessions=count, minutes=minutes))

    return AnalyticsResponse(
        total_sessions=total,
        total_minutes=total_minutes,
        total_points=sum(s.points_earned or 0 for s in sessions),
        sessions_by_type=dict(by_type),
        last_days=last_days,
        average_session_length=round_half_up(total_minutes / total) if total else 0,
    )
