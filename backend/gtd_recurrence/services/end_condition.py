"""
End condition evaluation for recurring series.

Evaluated fresh before every generation attempt; both `today` and the
occurrence count move over the lifetime of a series.
"""

from __future__ import annotations

from datetime import date

from gtd_recurrence.models.enums import SeriesState
from gtd_recurrence.models.recurrence import EndAfterCount, EndCondition, EndOnDate


def has_ended(end_condition: EndCondition, occurrence_count: int, today: date) -> bool:
    """
    Whether a series has terminated.

    Never -> False. OnDate -> today is strictly after the end date (the end
    date itself is still valid). AfterCount -> occurrence_count reached count.
    """
    if isinstance(end_condition, EndOnDate):
        return today > end_condition.end_date
    if isinstance(end_condition, EndAfterCount):
        return occurrence_count >= end_condition.count
    return False


def would_exceed(end_condition: EndCondition, next_date: date, next_count: int) -> bool:
    """Whether generating an occurrence on next_date as number next_count passes the end."""
    if isinstance(end_condition, EndOnDate):
        return next_date > end_condition.end_date
    if isinstance(end_condition, EndAfterCount):
        return next_count > end_condition.count
    return False


def series_state(end_condition: EndCondition, occurrence_count: int, today: date) -> SeriesState:
    if has_ended(end_condition, occurrence_count, today):
        return SeriesState.ENDED
    return SeriesState.ACTIVE
