"""Pydantic response models for progress and sync results."""

from __future__ import annotations

from pydantic import BaseModel


class LevelInfo(BaseModel):
    level: int
    progress: float
    points_into_level: int
    points_for_level: int
    current_threshold: int
    next_threshold: int


class AchievementStatus(BaseModel):
    id: str
    name: str
    description: str
    unlocked: bool
    xp_reward: int


class ChallengeStatus(BaseModel):
    id: str
    title: str
    description: str
    target: int
    current: int
    completed: bool
    xp_reward: int


class ProgressResponse(BaseModel):
    total_minutes: int
    pomodoros: int
    week_pomodoros: int
    month_pomodoros: int
    achievements: list[AchievementStatus]
    challenges: list[ChallengeStatus]
    badges: list[str]
    points: int
    level: LevelInfo


class SyncResponse(BaseModel):
    updated: list[str]
    badges: list[str]
    xp_gain: int
    points: int
    level: int
