"""Points leaderboard: top users by XP plus the caller's global rank."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError

from timetide.config import get_settings
from timetide.db.models import FocusSession, User
from timetide.exceptions import StoreUnavailable
from timetide.leaderboard.schemas import LeaderboardEntry, LeaderboardMe, LeaderboardResponse
from timetide.users.service import get_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_session_aggregates(db: AsyncSession, user_ids: list[int]) -> dict[int, tuple[int, int]]:
    """Completed session count and minutes per user."""
    if not user_ids:
        return {}
    result = await db.execute(
        select(
            FocusSession.user_id,
            func.count(FocusSession.id).label("sessions"),
            func.coalesce(func.sum(FocusSession.duration_minutes), 0).label("minutes"),
        )
        .where(FocusSession.user_id.in_(user_ids), FocusSession.completed.is_(True))
        .group_by(FocusSession.user_id)
    )
    return {row.user_id: (row.sessions, int(row.minutes)) for row in result}


async def get_leaderboard(db: AsyncSession, user_id: int, limit: int | None = None) -> LeaderboardResponse:
    """Top ``limit`` users by points (earlier signup wins ties).

    The caller is always shown: if outside the top list they are put first
    and the list is cut back to ``limit``. Rank counts users with strictly
    more points, so tied users share a rank.
    """
    limit = limit or get_settings().leaderboard_size
    try:
        me = await get_user(db, user_id)
        result = await db.execute(
            select(User).order_by(User.points.desc(), User.created_at.asc(), User.id.asc()).limit(limit)
        )
        top = list(result.scalars().all())

        ahead = await db.execute(select(func.count()).select_from(User).where(User.points > me.points))
        rank = ahead.scalar_one() + 1

        if all(u.id != me.id for u in top):
            top = [me, *top][:limit]

        aggregates = await get_session_aggregates(db, [u.id for u in top])
    except DBAPIError as exc:
        raise StoreUnavailable(f"get_leaderboard failed: {exc}") from exc

    entries = []
    for u in top:
        sessions, minutes = aggregates.get(u.id, (0, 0))
        entries.append(LeaderboardEntry(
            user_id=u.id,
            name=u.display_name,
            level=u.level,
            xp=u.points,
            sessions=sessions,
            minutes=minutes,
        ))

    return LeaderboardResponse(
        leaderboard=entries,
        me=LeaderboardMe(name=me.display_name, level=me.level, xp=me.points, rank=rank),
    )
