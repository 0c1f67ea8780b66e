"""Windowed pomodoro challenges (day, week, month, lifetime)."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo
from typing import Any

from timetide.gamification.achievements import completed_history
from timetide.gamification.definitions import CHALLENGES, POMODORO_MINUTES
from timetide.gamification.scoring import session_minutes
from timetide.gamification.time_utils import (
    get_day_boundaries,
    get_month_boundaries,
    get_week_boundaries,
)

_WINDOWS = {
    "day": get_day_boundaries,
    "week": get_week_boundaries,
    "month": get_month_boundaries,
}


def pomodoros_between(history: list[tuple[datetime, Any]], start: datetime, end: datetime) -> int:
    """Sum of per-session pomodoro-equivalents for sessions starting in [start, end)."""
    return sum(session_minutes(s) // POMODORO_MINUTES for ts, s in history if start <= ts < end)


def track_challenges(
    sessions: Iterable[Any],
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
) -> list[dict]:
    """Current progress of every challenge at ``now``.

    Windowed challenges sum ``floor(minutes / 25)`` per session; the lifetime
    challenge floors the summed minutes. ``completed`` is re-derived each call.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    history = completed_history(sessions)
    lifetime = sum(session_minutes(s) for _, s in history) // POMODORO_MINUTES

    results = []
    for c in CHALLENGES:
        if c.window is None:
            current = lifetime
        else:
            start, end = _WINDOWS[c.window](now, tz)
            current = pomodoros_between(history, start, end)
        results.append({
            "id": c.id,
            "title": c.title,
            "description": c.description,
            "target": c.target,
            "current": current,
            "completed": current >= c.target,
            "xp_reward": c.xp_reward,
        })
    return results
