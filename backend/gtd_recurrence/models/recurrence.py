"""
Recurrence rule and end condition models.

Both are tagged unions: a rule is discriminated by `kind`, an end condition
by `type`. Rules are frozen once built. Fields that do not apply to the
active kind (or monthly day type) may be stored but are ignored by the
calculator.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from gtd_recurrence.models.enums import EndType, MonthlyDayType


class _RuleBase(BaseModel):
    """Fields shared by every rule kind."""

    model_config = ConfigDict(frozen=True)

    interval: int = Field(1, description="Every N units (validated 1-365)")
    anchor_date: date = Field(
        default_factory=date.today,
        description="Date the rule was defined from; fallback day/weekday source",
    )


class DailyRule(_RuleBase):
    """Every N days."""

    kind: Literal["daily"] = "daily"


class WeeklyRule(_RuleBase):
    """Every N weeks on a set of weekdays (0=Sunday ... 6=Saturday)."""

    kind: Literal["weekly"] = "weekly"
    weekdays: list[int] = Field(default_factory=list)


class _DaySelectionRule(_RuleBase):
    """Day selection shared by monthly and yearly rules."""

    monthly_day_type: MonthlyDayType = MonthlyDayType.DAY_OF_MONTH
    day_of_month: Optional[int] = Field(None, description="1-31, for DAY_OF_MONTH")
    weekday_ordinal: int = Field(1, description="1-5 or -1 (last), for WEEKDAY")
    weekday: Optional[int] = Field(None, description="0=Sunday ... 6=Saturday, for WEEKDAY")


class MonthlyRule(_DaySelectionRule):
    """Every N months."""

    kind: Literal["monthly"] = "monthly"


class YearlyRule(_DaySelectionRule):
    """Every N years, optionally pinned to a month."""

    kind: Literal["yearly"] = "yearly"
    month: Optional[int] = Field(None, description="1-12")


RecurrenceRule = Annotated[
    Union[DailyRule, WeeklyRule, MonthlyRule, YearlyRule],
    Field(discriminator="kind"),
]

recurrence_rule_adapter: TypeAdapter[RecurrenceRule] = TypeAdapter(RecurrenceRule)


def parse_recurrence_rule(data: dict) -> RecurrenceRule:
    """Load a rule from its persisted JSON shape."""
    return recurrence_rule_adapter.validate_python(data)


def dump_recurrence_rule(rule: RecurrenceRule) -> dict:
    """Serialize a rule into its persisted JSON shape."""
    return rule.model_dump(mode="json")


# ===========================================
# End conditions
# ===========================================


class NeverEnd(BaseModel):
    """Series runs indefinitely."""

    model_config = ConfigDict(frozen=True)

    type: Literal["never"] = "never"


class EndOnDate(BaseModel):
    """Series runs through `end_date` inclusive."""

    model_config = ConfigDict(frozen=True)

    type: Literal["on_date"] = "on_date"
    end_date: date


class EndAfterCount(BaseModel):
    """Series stops once `count` instances have been generated."""

    model_config = ConfigDict(frozen=True)

    type: Literal["after_count"] = "after_count"
    count: int = Field(..., ge=0)


EndCondition = Annotated[
    Union[NeverEnd, EndOnDate, EndAfterCount],
    Field(discriminator="type"),
]

end_condition_adapter: TypeAdapter[EndCondition] = TypeAdapter(EndCondition)


def end_condition_from_columns(
    end_type: Optional[str],
    end_date: Optional[date],
    end_count: Optional[int],
) -> EndCondition:
    """Rebuild an end condition from the template's flat columns."""
    if end_type == EndType.ON_DATE.value and end_date is not None:
        return EndOnDate(end_date=end_date)
    if end_type == EndType.AFTER_COUNT.value and end_count is not None:
        return EndAfterCount(count=end_count)
    return NeverEnd()


def end_condition_to_columns(
    condition: EndCondition,
) -> tuple[str, Optional[date], Optional[int]]:
    """Flatten an end condition into (end_type, end_date, end_count)."""
    if isinstance(condition, EndOnDate):
        return EndType.ON_DATE.value, condition.end_date, None
    if isinstance(condition, EndAfterCount):
        return EndType.AFTER_COUNT.value, None, condition.count
    return EndType.NEVER.value, None, None
