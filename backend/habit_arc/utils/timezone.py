"""
Timezone Utilities - Centralized timezone and day-index handling

Every habit's progress array is indexed by calendar days since EPOCH_DATE.
A user's "today" is resolved in their own IANA timezone before indexing.
"""
from datetime import date, datetime, timedelta
from typing import Optional, Union
import logging

import pytz

from habit_arc.core.config import settings
from habit_arc.core.constants import EPOCH_DATE

logger = logging.getLogger(__name__)


def get_timezone(tz_name: Optional[str] = None):
    """
    Resolve an IANA timezone name

    Args:
        tz_name: IANA name such as 'Europe/Paris'. Empty or unknown names
                 fall back to the configured default timezone.

    Returns:
        pytz timezone object
    """
    name = tz_name or settings.DEFAULT_TIMEZONE
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{name}', falling back to {settings.DEFAULT_TIMEZONE}")
        return pytz.timezone(settings.DEFAULT_TIMEZONE)


def get_utc_now() -> datetime:
    """Get the current timezone-aware UTC datetime"""
    return datetime.now(pytz.utc)


def get_local_now(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> datetime:
    """
    Get the current datetime in a timezone

    Args:
        tz_name: IANA timezone name
        now: Optional reference instant (naive values are treated as UTC)

    Returns:
        Timezone-aware datetime in the requested timezone
    """
    tz = get_timezone(tz_name)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz)


def get_local_today(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> date:
    """Get today's calendar date in a timezone"""
    return get_local_now(tz_name, now).date()


def get_local_hour(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> int:
    """Get the current hour (0-23) in a timezone"""
    return get_local_now(tz_name, now).hour


def day_index_for_date(target: date) -> int:
    """
    Convert a calendar date to its day index

    Dates before the epoch are clamped to 0.
    """
    return max(0, (target - EPOCH_DATE).days)


def date_for_day_index(day_index: int) -> date:
    """Calendar date of a day index"""
    return EPOCH_DATE + timedelta(days=day_index)


def get_day_index(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> int:
    """
    Get today's day index for a user timezone

    Args:
        tz_name: IANA timezone name
        now: Optional reference instant

    Returns:
        Zero-based number of days between the epoch and the local date
    """
    return day_index_for_date(get_local_today(tz_name, now))


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 timestamp as stored by the frontend or Supabase

    Naive values are treated as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def habit_start_day_index(created_at: Union[str, datetime], tz_name: Optional[str] = None) -> int:
    """
    Day index of the local calendar day a habit was created on

    Args:
        created_at: Habit creation timestamp
        tz_name: Timezone used to resolve the creation day

    Returns:
        Day index, never negative
    """
    created_local = parse_timestamp(created_at).astimezone(get_timezone(tz_name))
    return day_index_for_date(created_local.date())


def is_habit_active(created_at: Union[str, datetime], total_days: int, day_index: int,
                    tz_name: Optional[str] = None) -> bool:
    """
    Check whether a habit is active on a day index

    A habit is active from its creation day index up to, but excluding,
    total_days.
    """
    start = habit_start_day_index(created_at, tz_name)
    return start <= day_index < int(total_days or 0)
