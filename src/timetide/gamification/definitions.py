"""Achievement and challenge definitions shared by the progress view and sync.

``BADGE_NAMES`` is the closed set of values that may be persisted as badges.
Every achievement name is a badge; a challenge becomes a badge under its
title only when that title is in the set.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

BADGE_NAMES: tuple[str, ...] = (
    "First Session",
    "Focus Master",
    "Streak Champion",
    "Early Bird",
    "Night Owl",
    "Zen Master",
    "Lightning Focus",
    "Collector x5",
    "Collector x25",
    "Collector x50",
    "Collector x100",
    "Weekly Streak",
    "Monthly Marathon",
)


def ordered_badge_names(names: Iterable[str]) -> list[str]:
    """Held badge names in canonical badge order; unknown names are dropped."""
    held = set(names)
    return [name for name in BADGE_NAMES if name in held]


POMODORO_MINUTES = 25
STREAK_DAYS = 7
LIGHTNING_WINDOW_HOURS = 2
EARLY_BIRD_HOURS = range(5, 7)
NIGHT_OWL_HOURS = (23, 0, 1)
TIME_OF_DAY_SESSIONS = 5
COLLECTOR_MILESTONES: dict[int, int] = {5: 25, 25: 100, 50: 250, 100: 500}


@dataclass(frozen=True)
class AchievementDefinition:
    """A badge unlocked by a predicate over a user's history summary."""

    id: str
    name: str
    description: str
    xp_reward: int
    predicate: Callable[[Any], bool]


@dataclass(frozen=True)
class ChallengeDefinition:
    """A pomodoro target measured over a calendar window (None = lifetime)."""

    id: str
    title: str
    description: str
    target: int
    xp_reward: int
    window: str | None

    @property
    def grants_badge(self) -> bool:
        return self.title in BADGE_NAMES


def _collector(threshold: int) -> AchievementDefinition:
    return AchievementDefinition(
        id=f"collector-x{threshold}",
        name=f"Collector x{threshold}",
        description=f"Complete {threshold} Pomodoros",
        xp_reward=COLLECTOR_MILESTONES[threshold],
        predicate=lambda s: s.pomodoros >= threshold,
    )


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="first-session",
        name="First Session",
        description="Complete your first session",
        xp_reward=10,
        predicate=lambda s: s.completed_count >= 1,
    ),
    AchievementDefinition(
        id="focus-master",
        name="Focus Master",
        description="Complete 10 sessions",
        xp_reward=50,
        predicate=lambda s: s.completed_count >= 10,
    ),
    AchievementDefinition(
        id="zen-master",
        name="Zen Master",
        description="Complete 25 work sessions and take 20 breaks",
        xp_reward=100,
        predicate=lambda s: s.work_count >= 25 and s.break_count >= 20,
    ),
    AchievementDefinition(
        id="lightning-focus",
        name="Lightning Focus",
        description="Start 3 sessions within 2 hours",
        xp_reward=75,
        predicate=lambda s: s.lightning,
    ),
    AchievementDefinition(
        id="early-bird",
        name="Early Bird",
        description="Start 5 work sessions between 5 and 7 AM",
        xp_reward=50,
        predicate=lambda s: s.early_bird_count >= TIME_OF_DAY_SESSIONS,
    ),
    AchievementDefinition(
        id="night-owl",
        name="Night Owl",
        description="Start 5 work sessions between 11 PM and 2 AM",
        xp_reward=50,
        predicate=lambda s: s.night_owl_count >= TIME_OF_DAY_SESSIONS,
    ),
    AchievementDefinition(
        id="streak-champion",
        name="Streak Champion",
        description="Complete a session on 7 consecutive days",
        xp_reward=150,
        predicate=lambda s: s.longest_day_run >= STREAK_DAYS,
    ),
    *(_collector(m) for m in COLLECTOR_MILESTONES),
)

CHALLENGES: tuple[ChallengeDefinition, ...] = (
    ChallengeDefinition(
        id="weekly-streak",
        title="Weekly Streak",
        description="Complete 25 Pomodoros this week",
        target=25,
        xp_reward=50,
        window="week",
    ),
    ChallengeDefinition(
        id="monthly-marathon",
        title="Monthly Marathon",
        description="Complete 50 Pomodoros this month",
        target=50,
        xp_reward=150,
        window="month",
    ),
    ChallengeDefinition(
        id="daily-sprint",
        title="Daily Sprint",
        description="Complete 10 Pomodoros in a day",
        target=10,
        xp_reward=60,
        window="day",
    ),
    ChallengeDefinition(
        id="focus-enthusiast",
        title="Focus Enthusiast",
        description="Reach 200 total Pomodoros",
        target=200,
        xp_reward=400,
        window=None,
    ),
)
