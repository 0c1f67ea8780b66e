"""Progress view and progress sync.

``get_progress`` is read-only: it merges live evaluation with the persisted
badge set. ``sync_progress`` runs the same evaluation and turns newly met
achievements and badge-granting challenges into badges, XP and level, all in
one transaction per attempt.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING

from sqlalchemy.exc import DBAPIError

from timetide.concurrency import run_optimistic
from timetide.config import get_settings
from timetide.db.models import User, UserBadge
from timetide.exceptions import StoreUnavailable
from timetide.gamification.achievements import evaluate_achievements, summarize_history
from timetide.gamification.challenges import track_challenges
from timetide.gamification.definitions import BADGE_NAMES, ordered_badge_names
from timetide.gamification.level_thresholds import compute_level, raise_level
from timetide.gamification.notifications import publish_badges_earned, publish_level_up
from timetide.gamification.schemas import (
    AchievementStatus,
    ChallengeStatus,
    LevelInfo,
    ProgressResponse,
    SyncResponse,
)
from timetide.gamification.time_utils import resolve_timezone
from timetide.sessions.service import get_user_sessions
from timetide.users.service import get_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def pending_grants(achievements: list[dict], challenges: list[dict], held: set[str]) -> list[dict]:
    """Badges earned by the current evaluation that are not yet held, in definition order."""
    seen = set(held)
    grants = []
    for a in achievements:
        if a["unlocked"] and a["name"] not in seen:
            seen.add(a["name"])
            grants.append({"name": a["name"], "xp_reward": a["xp_reward"]})
    for c in challenges:
        if c["completed"] and c["title"] in BADGE_NAMES and c["title"] not in seen:
            seen.add(c["title"])
            grants.append({"name": c["title"], "xp_reward": c["xp_reward"]})
    return grants


async def get_progress(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> ProgressResponse:
    """Current achievements, challenges and badges for a user. Never writes."""
    settings = get_settings()
    tz = tz or resolve_timezone()
    now = now or datetime.now(timezone.utc)

    try:
        user = await get_user(db, user_id)
        sessions = await get_user_sessions(db, user_id)
    except DBAPIError as exc:
        raise StoreUnavailable(f"get_progress failed: {exc}") from exc

    held = user.badge_names
    stats = summarize_history(sessions, tz)
    achievements = evaluate_achievements(sessions, held, tz, stats=stats)
    challenges = track_challenges(sessions, now, tz)
    by_id = {c["id"]: c["current"] for c in challenges}

    return ProgressResponse(
        total_minutes=stats.total_minutes,
        pomodoros=stats.pomodoros,
        week_pomodoros=by_id["weekly-streak"],
        month_pomodoros=by_id["monthly-marathon"],
        achievements=[AchievementStatus(**a) for a in achievements],
        challenges=[ChallengeStatus(**c) for c in challenges],
        badges=ordered_badge_names(user.badge_names),
        points=user.points,
        level=LevelInfo(**compute_level(user.points, settings.level_step)),
    )


async def sync_progress(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
    redis: object = None,
    max_attempts: int | None = None,
) -> SyncResponse:
    """Grant every newly earned badge and its XP exactly once.

    A second call with no new sessions in between grants nothing and writes
    nothing. Concurrent calls for one user serialize through the optimistic
    version check; the loser re-reads and finds the badges already held.

    Raises:
        NotFound: If the user does not exist.
        StoreUnavailable: On database failure (nothing committed).
        ConflictRetriesExhausted: If concurrent writers kept winning.
    """
    settings = get_settings()
    tz = tz or resolve_timezone()
    now = now or datetime.now(timezone.utc)
    outcome: dict = {}

    async def attempt() -> None:
        user = await get_user(db, user_id)
        sessions = await get_user_sessions(db, user_id)
        held = user.badge_names

        achievements = evaluate_achievements(sessions, held, tz)
        challenges = track_challenges(sessions, now, tz)
        grants = pending_grants(achievements, challenges, held)

        outcome.update(user=user, grants=grants, old_level=user.level, xp_gain=0)
        if not grants:
            return

        xp_gain = sum(g["xp_reward"] for g in grants)
        for g in grants:
            user.badges.append(UserBadge(badge_name=g["name"], xp_reward=g["xp_reward"], earned_at=now))
        user.points += xp_gain
        user.level = raise_level(user.level, user.points, settings.level_step)
        user.updated_at = now
        outcome["xp_gain"] = xp_gain
        await db.flush()

    await run_optimistic(db, "sync_progress", user_id, attempt, max_attempts or settings.sync_max_attempts)

    user: User = outcome["user"]
    grants: list[dict] = outcome["grants"]
    if grants:
        logger.info(
            "Granted %d badge(s) to user %s (+%d XP): %s",
            len(grants), user_id, outcome["xp_gain"], ", ".join(g["name"] for g in grants),
        )
        await publish_badges_earned(redis, user_id, grants)
        await publish_level_up(redis, user_id, outcome["old_level"], user.level)

    return SyncResponse(
        updated=[g["name"] for g in grants],
        badges=ordered_badge_names(user.badge_names),
        xp_gain=outcome["xp_gain"],
        points=user.points,
        level=user.level,
    )
