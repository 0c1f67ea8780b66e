"""Pydantic response models for the points leaderboard."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    user_id: int
    name: str
    level: int
    xp: int
    sessions: int = 0
    minutes: int = 0


class LeaderboardMe(BaseModel):
    name: str
    level: int
    xp: int
    rank: int


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry]
    me: LeaderboardMe
