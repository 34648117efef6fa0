"""
Enum definitions for the recurrence engine.

Values are the strings persisted in the store.
"""

from enum import Enum


class RecurrenceKind(str, Enum):
    """Unit a recurrence rule repeats in."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class MonthlyDayType(str, Enum):
    """
    How a monthly/yearly rule picks the day inside the resolved month.

    DAY_OF_MONTH = fixed day number, clamped to the month length
    WEEKDAY = nth weekday of the month (e.g. 2nd Tuesday, last Friday)
    LAST_DAY = final day of the month
    """

    DAY_OF_MONTH = "day_of_month"
    WEEKDAY = "weekday"
    LAST_DAY = "last_day"


class EndType(str, Enum):
    """How a recurring series terminates."""

    NEVER = "never"
    ON_DATE = "on_date"
    AFTER_COUNT = "after_count"


class GtdStatus(str, Enum):
    """GTD list a task lives in."""

    INBOX = "inbox"
    NEXT = "next"
    SCHEDULED = "scheduled"
    WAITING = "waiting"
    SOMEDAY = "someday"
    DONE = "done"


class SeriesState(str, Enum):
    """Lifecycle state of a recurring series."""

    ACTIVE = "active"
    ENDED = "ended"


class RulePreset(str, Enum):
    """Form shortcuts that map onto a weekly rule with a fixed weekday set."""

    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
