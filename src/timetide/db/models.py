"""ORM models for users, their badges, and focus sessions.

Both ``users`` and ``focus_sessions`` carry a ``version`` column wired into
SQLAlchemy's optimistic locking (``version_id_col``): an UPDATE only matches
the row version it was read at, and a concurrent writer surfaces as
``StaleDataError`` at flush time.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timetide.db.base import Base, BigIntPK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    badges: Mapped[list[UserBadge]] = relationship(
        "UserBadge",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="UserBadge.id",
    )
    sessions: Mapped[list[FocusSession]] = relationship("FocusSession", back_populates="user")

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    @property
    def badge_names(self) -> set[str]:
        """The user's badges as a set of names."""
        return {b.badge_name for b in self.badges}

    @property
    def display_name(self) -> str:
        """First name, else username, else the local part of the email."""
        return self.first_name or self.username or self.email.split("@")[0]


BADGE_UNIQUE_CONSTRAINT = "user_badges_user_id_badge_name_key"


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_name) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_name", name=BADGE_UNIQUE_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_name: Mapped[str] = mapped_column(String(64), nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="badges")


# ---------------------------------------------------------------------------
# Focus sessions
# ---------------------------------------------------------------------------


class FocusSession(Base):
    """One timer run: work, break or long break."""

    __tablename__ = "focus_sessions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_type: Mapped[str] = mapped_column("type", String(16), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    task: Mapped[str | None] = mapped_column(Text, nullable=True)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="sessions")

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012
