"""Level curve and computation.

Triangular progression: reaching level L takes ``STEP * (L - 1) * L / 2``
cumulative points, so each level costs ``STEP`` more than the one before
(100, 200, 300, ... with the default step).
"""

from __future__ import annotations

import math

LEVEL_STEP = 100


def level_threshold(level: int, step: int = LEVEL_STEP) -> int:
    """Cumulative points required to reach level."""
    if level <= 1:
        return 0
    return step * (level - 1) * level // 2


def compute_level(total_points: int, step: int = LEVEL_STEP) -> dict:
    """Compute level info from cumulative points.

    ``progress`` is the fraction of the way from this level's threshold to the
    next one, clamped to [0, 1].
    """
    points = max(0, int(total_points))
    level = math.floor((math.sqrt(1 + 8 * points / step) - 1) / 2) + 1

    # Float sqrt can land one off right at a boundary
    while level_threshold(level + 1, step) <= points:
        level += 1
    while level > 1 and level_threshold(level, step) > points:
        level -= 1

    current = level_threshold(level, step)
    upcoming = level_threshold(level + 1, step)
    points_for_level = upcoming - current
    points_into_level = points - current
    progress = min(1.0, max(0.0, points_into_level / points_for_level))

    return {
        "level": level,
        "progress": progress,
        "points_into_level": points_into_level,
        "points_for_level": points_for_level,
        "current_threshold": current,
        "next_threshold": upcoming,
    }


def raise_level(stored_level: int, total_points: int, step: int = LEVEL_STEP) -> int:
    """New value for a persisted level: recomputed, but never lower than stored."""
    return max(stored_level, compute_level(total_points, step)["level"])
