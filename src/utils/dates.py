"""
Date utility functions.

Business days exclude Saturday and Sunday only; no holiday calendar is
consulted.
"""

import math
from datetime import date, datetime, timezone
from typing import Union

DateLike = Union[date, datetime]

SATURDAY = 5
DAYS_PER_WEEK = 7
WORKDAYS_PER_WEEK = 5


def _as_date(value: DateLike) -> date:
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_business_day(day: DateLike) -> bool:
    """Check if a day falls Monday through Friday."""
    return _as_date(day).weekday() < SATURDAY


def business_days_between(start: DateLike, end: DateLike) -> int:
    """
    Count business days between two dates.

    Start day is EXCLUSIVE and end day INCLUSIVE, so the same day yields 0
    and Monday to Friday of one week yields 4. Datetimes are reduced to their
    calendar date without any time-zone conversion.

    Args:
        start: Start date (exclusive)
        end: End date (inclusive)

    Returns:
        Number of weekdays in (start, end], 0 when end is not after start
    """
    start_day = _as_date(start)
    end_day = _as_date(end)
    if end_day <= start_day:
        return 0

    total_days = (end_day - start_day).days
    full_weeks, remainder = divmod(total_days, DAYS_PER_WEEK)
    count = full_weeks * WORKDAYS_PER_WEEK

    weekday = start_day.weekday()
    for offset in range(1, remainder + 1):
        if (weekday + offset) % DAYS_PER_WEEK < SATURDAY:
            count += 1
    return count


def calendar_days_between(start: DateLike, end: DateLike) -> int:
    """
    Count calendar days between two points in time, rounding partial days up.

    Plain dates count whole days; datetimes count started 24h periods.
    A naive datetime paired with an aware one is taken as UTC. Never negative.
    """
    if isinstance(start, datetime) and isinstance(end, datetime):
        if (start.tzinfo is None) != (end.tzinfo is None):
            start, end = _as_utc(start), _as_utc(end)
        seconds = (end - start).total_seconds()
        return max(0, math.ceil(seconds / 86400))
    return max(0, (_as_date(end) - _as_date(start)).days)
