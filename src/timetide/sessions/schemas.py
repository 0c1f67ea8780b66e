"""Pydantic models for session payloads and analytics."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str = Field(validation_alias="session_type")
    duration_minutes: int
    duration_seconds: int
    completed: bool
    start_time: dt.datetime
    end_time: dt.datetime | None = None
    task: str | None = None
    points_earned: int


class UserSummary(BaseModel):
    level: int
    points: int
    badges: list[str]


class CompletionResult(BaseModel):
    points_earned: int
    session: SessionOut
    user: UserSummary


class DailyActivity(BaseModel):
    date: dt.date
    sessions: int
    minutes: int


class AnalyticsResponse(BaseModel):
    total_sessions: int
    total_minutes: int
    total_points: int
    sessions_by_type: dict[str, int]
    last_days: list[DailyActivity]
    average_session_length: int
