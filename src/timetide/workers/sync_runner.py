"""Batch progress sync for every user.

Catches up badges for users who never open the progress page, e.g. after a
new achievement definition ships. Each user is synced in its own session so
one failure does not stop the batch.

Usage: python -m timetide.workers.sync_runner
"""

from __future__ import annotations

import asyncio
import signal

import structlog
from sqlalchemy import select

from timetide.config import get_settings
from timetide.database import close_db, get_session_factory, init_db
from timetide.db.models import User
from timetide.exceptions import TimetideError
from timetide.gamification.progress_service import sync_progress
from timetide.log_setup import setup_logging
from timetide.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()

_running = True


async def iter_user_ids(batch_size: int):
    """Yield user ids in ascending batches (keyset pagination)."""
    factory = get_session_factory()
    last_id = 0
    while True:
        async with factory() as db:
            result = await db.execute(
                select(User.id).where(User.id > last_id).order_by(User.id).limit(batch_size)
            )
            ids = list(result.scalars().all())
        if not ids:
            return
        for user_id in ids:
            yield user_id
        last_id = ids[-1]


async def sync_all_users(redis: object = None, batch_size: int | None = None) -> dict[str, int]:
    """Sync every user; returns counts of users processed, granted and failed."""
    settings = get_settings()
    factory = get_session_factory()
    stats = {"processed": 0, "granted": 0, "failed": 0}

    async for user_id in iter_user_ids(batch_size or settings.sync_batch_size):
        if not _running:
            logger.info("sync_interrupted", processed=stats["processed"])
            break
        async with factory() as db:
            try:
                result = await sync_progress(db, user_id, redis=redis)
            except TimetideError as exc:
                stats["failed"] += 1
                logger.warning("user_sync_failed", user_id=user_id, error=str(exc))
                continue
        stats["processed"] += 1
        if result.updated:
            stats["granted"] += 1
            logger.info("user_synced", user_id=user_id, badges=result.updated, xp_gain=result.xp_gain)

    logger.info("sync_complete", **stats)
    return stats


async def main() -> None:
    """Run one full sync pass."""
    global _running  # noqa: PLW0603

    settings = get_settings()
    setup_logging(settings, component="sync_runner")
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    loop = asyncio.get_running_loop()

    def _stop() -> None:
        global _running  # noqa: PLW0603
        _running = False

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _stop)

    _running = True
    try:
        await sync_all_users(redis=get_redis())
    finally:
        await close_redis()
        await close_db()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
