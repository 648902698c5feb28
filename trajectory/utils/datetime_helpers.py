"""
Calendar-day helpers

All timestamps are stored in UTC. A "day" (for streaks, duplicate
completions, the daily login bonus and the coach message allowance) and a
"local hour" (for time-of-day analytics) are taken in APP_TIMEZONE.

RULES:
- Store aware UTC datetimes only (use now_utc())
- Convert to APP_TIMEZONE before taking .date() or .hour
- Day windows are half-open: [local midnight, next local midnight)
"""

import logging
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from trajectory import config

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


def get_app_timezone() -> ZoneInfo:
    """Return the configured timezone, falling back to UTC when it is unknown"""
    try:
        return ZoneInfo(config.APP_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid APP_TIMEZONE '{config.APP_TIMEZONE}': {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_local(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """Convert a stored timestamp to the app timezone"""
    return ensure_aware(dt).astimezone(tz or get_app_timezone())


def local_date(dt: datetime, tz: Optional[ZoneInfo] = None) -> date:
    """Calendar day a timestamp falls on"""
    return to_local(dt, tz).date()


def today_local(now: Optional[datetime] = None) -> date:
    """Today's calendar day in the app timezone"""
    return local_date(now or now_utc())


def day_bounds_utc(day: date, tz: Optional[ZoneInfo] = None) -> Tuple[datetime, datetime]:
    """
    UTC bounds of a local calendar day

    Returns:
        (start, end) where start is local midnight and end is the following
        local midnight, both converted to UTC. Use start <= t < end.
    """
    tz = tz or get_app_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def window_start_utc(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of a rolling window of `days` days ending now"""
    return ensure_aware(now or now_utc()) - timedelta(days=days)
