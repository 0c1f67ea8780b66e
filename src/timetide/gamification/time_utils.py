"""Timezone policy and calendar boundaries for achievement and challenge windows.

One zone (``Settings.timezone``) governs every local-time question: the hour
checks behind Early Bird / Night Owl, the day buckets behind Streak Champion
and Daily Sprint, and the week/month windows. Naive datetimes are UTC.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timetide.config import get_settings

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def resolve_timezone(name: str | None = None) -> tzinfo:
    """Return the configured zone, falling back to UTC on an unknown name."""
    name = name or get_settings().timezone
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r, using UTC", name)
        return timezone.utc


def coerce_start_time(value: object) -> datetime | None:
    """Return an aware datetime for a session start, or None when unusable."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    return None


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Calendar date of dt in tz."""
    return dt.astimezone(tz).date()


def local_hour(dt: datetime, tz: tzinfo) -> int:
    """Hour of day of dt in tz."""
    return dt.astimezone(tz).hour


def _local_midnight(d: date, tz: tzinfo) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)


def get_day_boundaries(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """[start, end) of the local calendar day containing now."""
    today = local_date(now, tz)
    return _local_midnight(today, tz), _local_midnight(today + timedelta(days=1), tz)


def get_week_boundaries(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """[Monday 00:00, next Monday 00:00) local, for the week containing now."""
    today = local_date(now, tz)
    monday = today - timedelta(days=today.weekday())
    return _local_midnight(monday, tz), _local_midnight(monday + timedelta(days=7), tz)


def get_month_boundaries(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """[1st 00:00, 1st of next month 00:00) local, for the month containing now."""
    today = local_date(now, tz)
    first = today.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return _local_midnight(first, tz), _local_midnight(next_first, tz)


def longest_daily_run(days: set[date]) -> int:
    """Length of the longest run of consecutive calendar days in days."""
    best = 0
    for d in days:
        if d - timedelta(days=1) in days:
            continue
        run = 1
        while d + timedelta(days=run) in days:
            run += 1
        best = max(best, run)
    return best
