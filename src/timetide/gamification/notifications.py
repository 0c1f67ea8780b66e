"""Broadcast badge and level-up events over Redis pub/sub.

Publishing happens after the database commit and is best effort: a Redis
failure is logged and never undoes or fails the grant.
"""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

BADGE_EARNED_CHANNEL = "pubsub:badge_earned"
LEVEL_UP_CHANNEL = "pubsub:level_up"


async def publish_badges_earned(redis: object, user_id: int, badges: list[dict]) -> None:
    """Publish one badge_earned message per newly granted badge."""
    if redis is None:
        return
    for badge in badges:
        try:
            await redis.publish(  # type: ignore[union-attr]
                BADGE_EARNED_CHANNEL,
                json.dumps({
                    "user_id": user_id,
                    "badge_name": badge["name"],
                    "xp_reward": badge["xp_reward"],
                }),
            )
        except Exception:
            logger.warning("Failed to publish badge_earned notification", exc_info=True)


async def publish_level_up(redis: object, user_id: int, old_level: int, new_level: int) -> None:
    """Publish a level_up message when the stored level rose."""
    if redis is None or new_level <= old_level:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            LEVEL_UP_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "old_level": old_level,
                "new_level": new_level,
            }),
        )
    except Exception:
        logger.warning("Failed to publish level_up broadcast", exc_info=True)
