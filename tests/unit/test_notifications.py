"""Tests for best-effort Redis pub/sub notifications."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from timetide.gamification.notifications import (
    BADGE_EARNED_CHANNEL,
    LEVEL_UP_CHANNEL,
    publish_badges_earned,
    publish_level_up,
)


@pytest.fixture
def redis():
    r = MagicMock()
    r.publish = AsyncMock(return_value=1)
    return r


class TestPublishBadgesEarned:

    @pytest.mark.asyncio
    async def test_one_message_per_badge(self, redis):
        await publish_badges_earned(redis, 7, [
            {"name": "First Session", "xp_reward": 10},
            {"name": "Collector x5", "xp_reward": 25},
        ])

        assert redis.publish.await_count == 2
        channel, payload = redis.publish.await_args_list[1].args
        assert channel == BADGE_EARNED_CHANNEL
        assert json.loads(payload) == {"user_id": 7, "badge_name": "Collector x5", "xp_reward": 25}

    @pytest.mark.asyncio
    async def test_no_client_is_a_no_op(self):
        await publish_badges_earned(None, 7, [{"name": "First Session", "xp_reward": 10}])

    @pytest.mark.asyncio
    async def test_failure_is_swallowed_per_badge(self, redis):
        redis.publish.side_effect = [ConnectionError("down"), 1]
        await publish_badges_earned(redis, 7, [
            {"name": "First Session", "xp_reward": 10},
            {"name": "Focus Master", "xp_reward": 50},
        ])
        assert redis.publish.await_count == 2


class TestPublishLevelUp:

    @pytest.mark.asyncio
    async def test_publishes_on_rise(self, redis):
        await publish_level_up(redis, 3, 1, 2)
        redis.publish.assert_awaited_once()
        channel, payload = redis.publish.await_args.args
        assert channel == LEVEL_UP_CHANNEL
        assert json.loads(payload) == {"user_id": 3, "old_level": 1, "new_level": 2}

    @pytest.mark.asyncio
    async def test_silent_without_rise(self, redis):
        await publish_level_up(redis, 3, 4, 4)
        redis.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, redis):
        redis.publish.side_effect = ConnectionError("down")
        await publish_level_up(redis, 3, 1, 5)
