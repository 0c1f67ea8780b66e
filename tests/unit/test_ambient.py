"""Tests for settings, logging setup and the event client."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog
from redis.exceptions import ConnectionError as RedisConnectionError

from timetide import redis_client
from timetide.config import Settings, get_settings
from timetide.log_setup import setup_logging


class TestSettings:

    def test_defaults(self):
        settings = get_settings()
        assert settings.timezone == "UTC"
        assert settings.level_step == 100
        assert settings.sync_max_attempts == 5
        assert settings.leaderboard_size == 10

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TIMETIDE_SYNC_MAX_ATTEMPTS", "9")
        monkeypatch.setenv("TIMETIDE_TIMEZONE", "Europe/Berlin")
        get_settings.cache_clear()
        settings = get_settings()
        assert settings.sync_max_attempts == 9
        assert settings.timezone == "Europe/Berlin"

    def test_cached(self):
        assert get_settings() is get_settings()


class TestSetupLogging:

    def test_binds_component(self):
        setup_logging(Settings(log_format="console"), component="sync_runner")
        ctx = structlog.contextvars.get_contextvars()
        assert ctx["component"] == "sync_runner"
        assert ctx["environment"] == "development"
        structlog.contextvars.clear_contextvars()

    def test_quiets_sql_echo_unless_debug(self):
        setup_logging(Settings())
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        setup_logging(Settings(debug=True))
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
        structlog.contextvars.clear_contextvars()


class TestRedisClient:

    @pytest.mark.asyncio
    async def test_disabled_until_initialized(self):
        await redis_client.close_redis()
        assert redis_client.get_redis() is None

    @pytest.mark.asyncio
    async def test_unreachable_server_disables_events(self, monkeypatch):
        fake = MagicMock()
        fake.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        fake.aclose = AsyncMock()
        monkeypatch.setattr(redis_client.redis, "from_url", MagicMock(return_value=fake))

        assert await redis_client.init_redis("redis://nowhere:6379/0") is None
        assert redis_client.get_redis() is None
        fake.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connected_client_is_shared(self, monkeypatch):
        fake = MagicMock()
        fake.ping = AsyncMock(return_value=True)
        fake.aclose = AsyncMock()
        monkeypatch.setattr(redis_client.redis, "from_url", MagicMock(return_value=fake))

        assert await redis_client.init_redis("redis://localhost:6379/0", max_connections=3) is fake
        assert redis_client.get_redis() is fake
        redis_client.redis.from_url.assert_called_once()
        assert redis_client.redis.from_url.call_args.kwargs["max_connections"] == 3

        await redis_client.close_redis()
        assert redis_client.get_redis() is None
        fake.aclose.assert_awaited_once()
