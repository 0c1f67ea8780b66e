"""Challenge windows and pomodoro aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from timetide.gamification.challenges import track_challenges
from timetide.gamification.definitions import BADGE_NAMES, CHALLENGES

NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)  # Wednesday


def _by_id(results: list[dict]) -> dict[str, dict]:
    return {c["id"]: c for c in results}


class TestWindows:

    def test_window_membership(self, make_session):
        sessions = [
            make_session(minutes=25, start=datetime(2026, 2, 28, 10, 0, tzinfo=timezone.utc)),  # last month
            make_session(minutes=25, start=datetime(2026, 3, 1, 23, 59, tzinfo=timezone.utc)),  # Sunday, last week
            make_session(minutes=50, start=datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)),  # Monday 00:00
            make_session(minutes=25, start=datetime(2026, 3, 4, 8, 0, tzinfo=timezone.utc)),  # today
        ]
        results = _by_id(track_challenges(sessions, NOW))
        assert results["daily-sprint"]["current"] == 1
        assert results["weekly-streak"]["current"] == 3
        assert results["monthly-marathon"]["current"] == 4
        assert results["focus-enthusiast"]["current"] == 5

    def test_windowed_challenges_floor_per_session(self, make_session):
        """Two 15-minute sessions today: 0 toward the day, 1 toward lifetime (30 min)."""
        sessions = [make_session(minutes=15, start=NOW - timedelta(hours=h)) for h in (1, 2)]
        results = _by_id(track_challenges(sessions, NOW))
        assert results["daily-sprint"]["current"] == 0
        assert results["focus-enthusiast"]["current"] == 1

    def test_week_follows_configured_zone(self, make_session):
        """Sunday 23:30 UTC is Monday 01:30 at UTC+2."""
        sessions = [make_session(minutes=25, start=datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc))]
        assert _by_id(track_challenges(sessions, NOW))["weekly-streak"]["current"] == 0
        plus_two = timezone(timedelta(hours=2))
        assert _by_id(track_challenges(sessions, NOW, plus_two))["weekly-streak"]["current"] == 1

    def test_incomplete_and_undated_sessions_ignored(self, make_session):
        undated = make_session(minutes=25)
        undated.start_time = None
        sessions = [make_session(minutes=25, start=NOW, completed=False), undated]
        assert all(c["current"] == 0 for c in track_challenges(sessions, NOW))


class TestCompletion:

    def test_daily_sprint_completes_at_target(self, make_session):
        sessions = [make_session(minutes=25, start=NOW - timedelta(minutes=30 * i)) for i in range(10)]
        daily = _by_id(track_challenges(sessions, NOW))["daily-sprint"]
        assert daily["current"] == 10
        assert daily["completed"] is True

    def test_completion_is_rederived(self, make_session):
        """Yesterday's full sprint does not count today."""
        sessions = [make_session(minutes=25, start=NOW - timedelta(days=1, minutes=30 * i)) for i in range(10)]
        daily = _by_id(track_challenges(sessions, NOW))["daily-sprint"]
        assert daily["completed"] is False

    def test_naive_now_is_utc(self, make_session):
        sessions = [make_session(minutes=25, start=NOW)]
        naive = NOW.replace(tzinfo=None)
        assert _by_id(track_challenges(sessions, naive))["daily-sprint"]["current"] == 1


class TestDefinitions:

    def test_targets(self):
        targets = {c.id: (c.target, c.xp_reward) for c in CHALLENGES}
        assert targets == {
            "weekly-streak": (25, 50),
            "monthly-marathon": (50, 150),
            "daily-sprint": (10, 60),
            "focus-enthusiast": (200, 400),
        }

    def test_only_enumerated_titles_grant_badges(self):
        granting = {c.title for c in CHALLENGES if c.grants_badge}
        assert granting == {"Weekly Streak", "Monthly Marathon"}
        assert granting <= set(BADGE_NAMES)
