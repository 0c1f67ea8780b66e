"""Redis client used to broadcast gamification events.

Events are optional: when no client has been initialized, or the server is
unreachable at startup, callers get ``None`` and publishing is skipped.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 10) -> redis.Redis | None:
    """Connect to Redis for event publishing.

    Returns the client, or ``None`` if the server did not answer a ping.
    """
    global _client  # noqa: PLW0603
    client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("redis_unavailable", url=url, error=str(exc))
        await client.aclose()
        _client = None
        return None
    _client = client
    return _client


async def close_redis() -> None:
    """Close the event client, if any."""
    global _client  # noqa: PLW0603
    if _client:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis | None:
    """The event client, or ``None`` when events are disabled."""
    return _client
