"""Pydantic models (schemas) for the recurrence engine."""

from gtd_recurrence.models.enums import (
    EndType,
    GtdStatus,
    MonthlyDayType,
    RecurrenceKind,
    RulePreset,
    SeriesState,
)
from gtd_recurrence.models.recurrence import (
    DailyRule,
    EndAfterCount,
    EndCondition,
    EndOnDate,
    MonthlyRule,
    NeverEnd,
    RecurrenceRule,
    WeeklyRule,
    YearlyRule,
)
from gtd_recurrence.models.task import Task, TaskCreate, TaskData, TaskUpdate

__all__ = [
    "EndType",
    "GtdStatus",
    "MonthlyDayType",
    "RecurrenceKind",
    "RulePreset",
    "SeriesState",
    "DailyRule",
    "WeeklyRule",
    "MonthlyRule",
    "YearlyRule",
    "RecurrenceRule",
    "NeverEnd",
    "EndOnDate",
    "EndAfterCount",
    "EndCondition",
    "Task",
    "TaskCreate",
    "TaskData",
    "TaskUpdate",
]
