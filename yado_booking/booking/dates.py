"""
Calendar-date helpers shared by pricing, restrictions and availability.

All functions work on calendar dates. A ``datetime`` argument is reduced to
its date part first, so time-of-day noise never changes a night count.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from yado_booking.config import TIMEZONE

ONE_DAY = timedelta(days=1)


def as_date(value: date | datetime) -> date:
    """
    Reduce a date or datetime to a calendar date.

    Args:
        value: Date or datetime

    Returns:
        date: The calendar date (time of day dropped)

    Raises:
        TypeError: If value is neither a date nor a datetime
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def local_today(tz_name: str = TIMEZONE) -> date:
    """
    Return today's calendar date in the reference timezone.

    Callers sample this once per request and pass the result down, so that a
    single calculation never straddles midnight.

    Args:
        tz_name: IANA timezone name (default: configured TIMEZONE)

    Returns:
        date: Today's date in that timezone
    """
    return datetime.now(ZoneInfo(tz_name)).date()


def nights_between(check_in: date | datetime, check_out: date | datetime) -> int:
    """
    Count the nights between check-in and check-out.

    Returns:
        int: Whole-day difference; 0 or negative when check_out <= check_in

    Example:
        >>> nights_between(date(2026, 3, 1), date(2026, 3, 3))
        2
    """
    return (as_date(check_out) - as_date(check_in)).days


def is_past(value: date | datetime, today: date) -> bool:
    """Return True if value falls strictly before today."""
    return as_date(value) < today


def enumerate_nights(check_in: date | datetime, check_out: date | datetime) -> list[date]:
    """
    List every night of a stay, check-in date through the day before check-out.

    Args:
        check_in: Arrival date (inclusive)
        check_out: Departure date (exclusive)

    Returns:
        list[date]: Chronological nights; empty when check_out <= check_in
    """
    start = as_date(check_in)
    return [start + ONE_DAY * i for i in range(max(nights_between(check_in, check_out), 0))]


def enumerate_dates(start: date | datetime, end: date | datetime) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = as_date(start)
    last = as_date(end)
    while current <= last:
        yield current
        current += ONE_DAY
