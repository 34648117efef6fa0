"""
Occurrence calculation for recurrence rules.

Computes the next due date for a rule, short previews of upcoming dates and
human-readable rule summaries. Everything here is pure: results depend only
on the arguments.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from typing import Optional

from gtd_recurrence.core.logger import setup_logger
from gtd_recurrence.models.enums import MonthlyDayType
from gtd_recurrence.models.recurrence import (
    DailyRule,
    MonthlyRule,
    RecurrenceRule,
    WeeklyRule,
    YearlyRule,
)
from gtd_recurrence.utils.calendar_dates import (
    add_months,
    last_day_of_month,
    nth_weekday_of_month,
    sunday_weekday,
)

logger = setup_logger(__name__)

MAX_PREVIEW_OCCURRENCES = 10

SHORT_DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
ORDINAL_NAMES = {1: "first", 2: "second", 3: "third", 4: "fourth", 5: "fifth", -1: "last"}


def next_occurrence(rule: RecurrenceRule, from_date: date) -> Optional[date]:
    """
    Calculate the occurrence that follows from_date.

    Returns None for an unknown rule kind, a weekly rule without weekdays
    or a weekday rule whose weekday is outside 0-6.
    """
    if isinstance(rule, DailyRule):
        return from_date + timedelta(days=rule.interval)

    if isinstance(rule, WeeklyRule):
        return _next_weekly(rule, from_date)

    if isinstance(rule, MonthlyRule):
        year, month = add_months(from_date.year, from_date.month, rule.interval)
        return _resolve_day(rule, year, month)

    if isinstance(rule, YearlyRule):
        year = from_date.year + rule.interval
        month = rule.month or from_date.month
        return _resolve_day(rule, year, month)

    logger.warning(f"Unsupported recurrence rule: {rule!r}")
    return None


def _next_weekly(rule: WeeklyRule, from_date: date) -> Optional[date]:
    """Next selected weekday in the current week, else the first one `interval` weeks on."""
    weekdays = sorted(set(rule.weekdays))
    if not weekdays:
        return None

    current = sunday_weekday(from_date)
    for weekday in weekdays:
        if weekday > current:
            return from_date + timedelta(days=weekday - current)

    days_ahead = 7 - current + weekdays[0] + (rule.interval - 1) * 7
    return from_date + timedelta(days=days_ahead)


def _resolve_day(rule: MonthlyRule | YearlyRule, year: int, month: int) -> Optional[date]:
    """Pick the day inside an already-resolved month."""
    last_day = last_day_of_month(year, month)

    if rule.monthly_day_type == MonthlyDayType.LAST_DAY:
        return date(year, month, last_day)

    if rule.monthly_day_type == MonthlyDayType.WEEKDAY:
        weekday = rule.weekday if rule.weekday is not None else sunday_weekday(rule.anchor_date)
        resolved = nth_weekday_of_month(year, month, weekday, rule.weekday_ordinal)
        if resolved is None:
            # Months without a 5th match use the final match in the same month.
            resolved = nth_weekday_of_month(year, month, weekday, -1)
        return resolved

    target_day = rule.day_of_month or rule.anchor_date.day
    return date(year, month, min(target_day, last_day))


def iter_occurrences(rule: RecurrenceRule, start_date: date) -> Iterator[date]:
    """Yield successive occurrences after start_date until the rule yields None."""
    current = start_date
    while True:
        upcoming = next_occurrence(rule, current)
        if upcoming is None:
            return
        yield upcoming
        current = upcoming


def next_n_occurrences(
    rule: Optional[RecurrenceRule], n: int, start_date: Optional[date] = None
) -> list[date]:
    """
    Preview the next n occurrences after start_date (default: today).

    Never returns more than MAX_PREVIEW_OCCURRENCES dates.
    """
    if rule is None or n <= 0:
        return []
    limit = min(n, MAX_PREVIEW_OCCURRENCES)
    occurrences: list[date] = []
    for occurrence in iter_occurrences(rule, start_date or date.today()):
        occurrences.append(occurrence)
        if len(occurrences) >= limit:
            break
    return occurrences


def first_occurrence(rule: RecurrenceRule) -> Optional[date]:
    """First occurrence after the rule's anchor date, used to prefill a due date."""
    return next_occurrence(rule, rule.anchor_date)


# ===========================================
# Presentation
# ===========================================


def _day_description(rule: MonthlyRule | YearlyRule) -> str:
    if rule.monthly_day_type == MonthlyDayType.LAST_DAY:
        return "the last day"
    if rule.monthly_day_type == MonthlyDayType.WEEKDAY:
        weekday = rule.weekday if rule.weekday is not None else sunday_weekday(rule.anchor_date)
        ordinal = ORDINAL_NAMES.get(rule.weekday_ordinal, "first")
        return f"the {ordinal} {DAY_NAMES[weekday % 7]}"
    return f"day {rule.day_of_month or rule.anchor_date.day}"


def _every(interval: int, unit: str) -> str:
    if interval == 1:
        return f"Every {unit}"
    return f"Every {interval} {unit}s"


def format_rule_summary(rule: Optional[RecurrenceRule]) -> str:
    """Human-readable description, e.g. "Every 2 weeks on Tue, Thu"."""
    if rule is None:
        return "No recurrence"

    if isinstance(rule, DailyRule):
        return _every(rule.interval, "day")

    if isinstance(rule, WeeklyRule):
        prefix = _every(rule.interval, "week")
        if not rule.weekdays:
            return prefix
        days = ", ".join(SHORT_DAY_NAMES[day % 7] for day in sorted(set(rule.weekdays)))
        return f"{prefix} on {days}"

    if isinstance(rule, MonthlyRule):
        return f"{_every(rule.interval, 'month')} on {_day_description(rule)}"

    if isinstance(rule, YearlyRule):
        month_name = MONTH_NAMES[(rule.month or rule.anchor_date.month) - 1]
        prefix = _every(rule.interval, "year")
        if rule.monthly_day_type == MonthlyDayType.DAY_OF_MONTH:
            return f"{prefix} on {month_name} {rule.day_of_month or rule.anchor_date.day}"
        return f"{prefix} on {_day_description(rule)} of {month_name}"

    return "Custom recurrence"


def format_preview_date(value: date) -> str:
    """Short display form for preview lists, e.g. "Jan 4, 2024"."""
    return f"{MONTH_NAMES[value.month - 1][:3]} {value.day}, {value.year}"
