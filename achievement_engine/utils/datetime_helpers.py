"""
Date/time helpers for achievement evaluation

Conditions such as "sessions before 8 AM" or "weekend sessions" are judged on
the user's wall clock, so every timestamp goes through to_local() before its
hour, weekday or calendar date is inspected.

RULES:
- Aware datetimes are converted into the evaluation timezone
- Naive datetimes are assumed to already be in the evaluation timezone
"""

import logging
from datetime import datetime, date, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from achievement_engine.config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

TimezoneLike = Union[str, ZoneInfo, None]


def get_timezone(tz: TimezoneLike = None) -> ZoneInfo:
    """
    Resolve a timezone name (or ZoneInfo) to ZoneInfo

    Unknown names fall back to DEFAULT_TIMEZONE.
    """
    if isinstance(tz, ZoneInfo):
        return tz
    name = tz or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_local(dt: datetime, tz: TimezoneLike = None) -> datetime:
    """
    Convert datetime into the evaluation timezone

    Args:
        dt: Aware or naive datetime
        tz: IANA name or ZoneInfo (defaults to DEFAULT_TIMEZONE)

    Returns:
        Datetime whose hour/weekday/date are wall-clock values for the user
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(get_timezone(tz))


def local_date(dt: datetime, tz: TimezoneLike = None) -> date:
    """Calendar date of dt on the user's wall clock"""
    return to_local(dt, tz).date()


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (storage writes), convert aware ones"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
