"""User lookup and signup."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError

from timetide.db.models import User
from timetide.exceptions import NotFound, StoreUnavailable

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    first_name: str = "",
) -> User:
    """
    Create a user in the signup state: no points, level 1, no badges.

    Raises:
        ValueError: If the username or email is already taken.
    """
    now = datetime.now(timezone.utc)
    user = User(
        username=username,
        email=email.strip().lower(),
        first_name=first_name.strip(),
        points=0,
        level=1,
        badges=[],
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        msg = "Username or email already taken"
        raise ValueError(msg) from exc
    except DBAPIError as exc:
        await db.rollback()
        raise StoreUnavailable(f"create_user failed: {exc}") from exc

    logger.info("user_created", user_id=user.id, username=username)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user with its badges loaded, bypassing stale identity-map state.

    Raises:
        NotFound: If no user has this id.
    """
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("user", user_id)
    return user
