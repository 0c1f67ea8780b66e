"""Session scoring: minimum-duration gate plus a per-type linear rate.

Points are computed once, when a session completes, and frozen on the
session row. Changing ``SCORE_RULES`` later never rescores history.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from timetide.gamification.time_utils import round_half_up

SESSION_TYPES = ("work", "break", "longbreak")


@dataclass(frozen=True)
class ScoreRule:
    """Anti-abuse gate and reward rate for one session type."""

    min_seconds: int
    points_per_minute: float


SCORE_RULES: Mapping[str, ScoreRule] = MappingProxyType({
    "work": ScoreRule(min_seconds=5 * 60, points_per_minute=1.0),
    "break": ScoreRule(min_seconds=3 * 60, points_per_minute=0.2),
    "longbreak": ScoreRule(min_seconds=10 * 60, points_per_minute=0.5),
})


def minutes_from_seconds(seconds: int) -> int:
    """Stored minute value for an elapsed duration: at least 1, rounded half up."""
    return max(1, round_half_up(seconds / 60))


def session_minutes(session: Any) -> int:
    """Minutes credited to a session.

    Prefers the explicit minute field; falls back to rounding the seconds.
    """
    minutes = int(getattr(session, "duration_minutes", 0) or 0)
    if minutes > 0:
        return minutes
    seconds = int(getattr(session, "duration_seconds", 0) or 0)
    return round_half_up(seconds / 60) if seconds > 0 else 0


def score_session(session: Any, rules: Mapping[str, ScoreRule] = SCORE_RULES) -> int:
    """Points for a session given its type, duration and completion.

    Incomplete sessions, unknown types and sessions under the type's minimum
    duration all score 0. There is no partial credit and no per-session cap.
    """
    if not getattr(session, "completed", False):
        return 0

    rule = rules.get(getattr(session, "session_type", None) or "work")
    if rule is None:
        return 0

    seconds = int(getattr(session, "duration_seconds", 0) or 0)
    if seconds < rule.min_seconds:
        return 0

    return max(0, math.floor(session_minutes(session) * rule.points_per_minute))
