"""Optimistic read-modify-write loop for per-user updates.

Writers never lock. Each attempt reads fresh rows, mutates them and commits;
the ``version`` check on ``users``/``focus_sessions`` and the unique badge
constraint turn a lost race into ``StaleDataError``/``IntegrityError``, which
rolls the whole attempt back and starts over.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from timetide.db.models import BADGE_UNIQUE_CONSTRAINT
from timetide.exceptions import ConflictRetriesExhausted, StoreUnavailable, TimetideError

logger = structlog.get_logger()

T = TypeVar("T")

# PostgreSQL reports the constraint name, SQLite the constrained columns
_BADGE_CONFLICT_MARKERS = (BADGE_UNIQUE_CONSTRAINT, "user_badges.user_id, user_badges.badge_name")


def is_badge_conflict(exc: IntegrityError) -> bool:
    """True when the violation is a concurrent grant of an already-held badge."""
    message = str(exc.orig)
    return any(marker in message for marker in _BADGE_CONFLICT_MARKERS)


async def run_optimistic(
    db: AsyncSession,
    operation: str,
    user_id: int,
    attempt: Callable[[], Awaitable[T]],
    max_attempts: int,
) -> T:
    """Run ``attempt`` and commit, retrying on version or badge-uniqueness conflicts.

    Any failure rolls the session back before it propagates.

    Raises:
        ConflictRetriesExhausted: every attempt lost a race.
        StoreUnavailable: the database failed for any other reason, including
            integrity violations that are not a badge conflict.
    """
    for n in range(1, max_attempts + 1):
        try:
            result = await attempt()
            await db.commit()
            return result
        except StaleDataError:
            await db.rollback()
            logger.info("optimistic_conflict", operation=operation, user_id=user_id, attempt=n, kind="version")
        except IntegrityError as exc:
            await db.rollback()
            if not is_badge_conflict(exc):
                logger.error("integrity_failure", operation=operation, user_id=user_id, error=str(exc.orig))
                raise StoreUnavailable(f"{operation} failed: {exc}") from exc
            logger.info("optimistic_conflict", operation=operation, user_id=user_id, attempt=n, kind="badge")
        except TimetideError:
            await db.rollback()
            raise
        except DBAPIError as exc:
            await db.rollback()
            logger.error("store_failure", operation=operation, user_id=user_id, error=str(exc))
            raise StoreUnavailable(f"{operation} failed: {exc}") from exc
        except Exception:
            await db.rollback()
            raise

    raise ConflictRetriesExhausted(operation, user_id, max_attempts)
