"""
Calendar date utilities.

All recurrence math works on naive calendar dates (no time of day, no
timezone). Weekdays follow the stored rule convention: 0=Sunday ... 6=Saturday.
Months are 1-based (1=January), matching the calendar module.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"


def parse_calendar_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string into a naive date.

    The value is never routed through a datetime with a timezone, so it
    cannot shift across a day boundary.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def format_calendar_date(value: date) -> str:
    """Format a date as zero-padded YYYY-MM-DD."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def sunday_weekday(value: date) -> int:
    """Weekday of a date with 0=Sunday ... 6=Saturday."""
    return (value.weekday() + 1) % 7


def last_day_of_month(year: int, month: int) -> int:
    """Number of the last day in the month (28-31)."""
    return calendar.monthrange(year, month)[1]


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Shift a (year, month) pair by a number of months."""
    total = year * 12 + (month - 1) + months
    return total // 12, total % 12 + 1


def nth_weekday_of_month(
    year: int, month: int, weekday: int, ordinal: int
) -> Optional[date]:
    """
    Find the nth occurrence of a weekday in a month (e.g. 2nd Tuesday).

    Args:
        year: Calendar year
        month: Month (1-12)
        weekday: Target weekday, 0=Sunday ... 6=Saturday
        ordinal: 1-5 for first..fifth, -1 for last

    Returns:
        The matching date, or None when the month has fewer than `ordinal`
        matches or the weekday is outside 0-6. Ordinal -1 always resolves
        for a valid weekday.
    """
    if not 0 <= weekday <= 6:
        return None
    last_day = last_day_of_month(year, month)

    if ordinal == -1:
        candidate = date(year, month, last_day)
        while sunday_weekday(candidate) != weekday:
            candidate -= timedelta(days=1)
        return candidate

    first = date(year, month, 1)
    offset = (weekday - sunday_weekday(first)) % 7
    day = 1 + offset + (ordinal - 1) * 7
    if ordinal < 1 or day > last_day:
        return None
    return date(year, month, day)
