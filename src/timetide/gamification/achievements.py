"""Achievement evaluation over a user's full session history.

Evaluation is a pure function of the history and the persisted badge set,
recomputed from scratch on every call. Only completed sessions with a usable
start time take part.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

from timetide.gamification.definitions import (
    ACHIEVEMENTS,
    EARLY_BIRD_HOURS,
    LIGHTNING_WINDOW_HOURS,
    NIGHT_OWL_HOURS,
    POMODORO_MINUTES,
)
from timetide.gamification.scoring import session_minutes
from timetide.gamification.time_utils import coerce_start_time, local_date, local_hour, longest_daily_run


@dataclass(frozen=True)
class HistoryStats:
    """Aggregates the achievement predicates are written against."""

    completed_count: int = 0
    work_count: int = 0
    break_count: int = 0
    total_minutes: int = 0
    early_bird_count: int = 0
    night_owl_count: int = 0
    longest_day_run: int = 0
    lightning: bool = False

    @property
    def pomodoros(self) -> int:
        return self.total_minutes // POMODORO_MINUTES


def completed_history(sessions: Iterable[Any]) -> list[tuple[datetime, Any]]:
    """Completed sessions paired with their aware start time, oldest first."""
    rows = []
    for s in sessions:
        if not getattr(s, "completed", False):
            continue
        start = coerce_start_time(getattr(s, "start_time", None))
        if start is None:
            continue
        rows.append((start, s))
    rows.sort(key=lambda row: row[0])
    return rows


def _has_lightning_run(starts: list[datetime]) -> bool:
    window = timedelta(hours=LIGHTNING_WINDOW_HOURS)
    return any(starts[i + 2] - starts[i] <= window for i in range(len(starts) - 2))


def summarize_history(sessions: Iterable[Any], tz: tzinfo = timezone.utc) -> HistoryStats:
    """Reduce a session history to the aggregates used by achievements."""
    history = completed_history(sessions)
    if not history:
        return HistoryStats()

    work_count = break_count = early = night = total_minutes = 0
    days = set()
    for start, s in history:
        session_type = getattr(s, "session_type", None) or "work"
        total_minutes += session_minutes(s)
        days.add(local_date(start, tz))
        if session_type == "work":
            work_count += 1
            hour = local_hour(start, tz)
            if hour in EARLY_BIRD_HOURS:
                early += 1
            if hour in NIGHT_OWL_HOURS:
                night += 1
        elif session_type == "break":
            break_count += 1

    return HistoryStats(
        completed_count=len(history),
        work_count=work_count,
        break_count=break_count,
        total_minutes=total_minutes,
        early_bird_count=early,
        night_owl_count=night,
        longest_day_run=longest_daily_run(days),
        lightning=_has_lightning_run([start for start, _ in history]),
    )


def evaluate_achievements(
    sessions: Iterable[Any],
    persisted_badges: Iterable[str] = (),
    tz: tzinfo = timezone.utc,
    stats: HistoryStats | None = None,
) -> list[dict]:
    """Report every achievement with its unlocked state.

    An achievement already present in ``persisted_badges`` always reports
    unlocked, whatever the current history says.
    """
    if stats is None:
        stats = summarize_history(sessions, tz)
    held = set(persisted_badges)
    return [
        {
            "id": a.id,
            "name": a.name,
            "description": a.description,
            "unlocked": a.name in held or bool(a.predicate(stats)),
            "xp_reward": a.xp_reward,
        }
        for a in ACHIEVEMENTS
    ]
