"""
Recurrence rule construction and validation.

Turns loosely-typed form values into a typed rule and checks a rule against
the allowed ranges. Weekday/weekend presets live here as a thin mapping onto
weekly rules; they are not rule kinds of their own.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from gtd_recurrence.core.exceptions import ValidationError
from gtd_recurrence.models.enums import MonthlyDayType, RecurrenceKind, RulePreset
from gtd_recurrence.models.recurrence import (
    DailyRule,
    MonthlyRule,
    RecurrenceRule,
    WeeklyRule,
    YearlyRule,
    parse_recurrence_rule,
)
from gtd_recurrence.utils.calendar_dates import parse_calendar_date

MIN_INTERVAL = 1
MAX_INTERVAL = 365
VALID_ORDINALS = frozenset({1, 2, 3, 4, 5, -1})

PRESET_WEEKDAYS: dict[RulePreset, tuple[int, ...]] = {
    RulePreset.WEEKDAYS: (1, 2, 3, 4, 5),
    RulePreset.WEEKENDS: (0, 6),
}

_RULE_TYPES = (DailyRule, WeeklyRule, MonthlyRule, YearlyRule)
_KIND_VALUES = frozenset(kind.value for kind in RecurrenceKind)
_PRESET_VALUES = frozenset(preset.value for preset in RulePreset)


@dataclass(frozen=True)
class RuleValidation:
    """Outcome of validate_rule(); truthy when the rule is valid."""

    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


_OK = RuleValidation(valid=True)


def _fail(reason: str) -> RuleValidation:
    return RuleValidation(valid=False, error=reason)


def _parse_int(value: Any, default: Optional[int]) -> Optional[int]:
    """Parse a form value as int, falling back to default when unparsable."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _parse_anchor(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return parse_calendar_date(value)
        except ValueError as exc:
            raise ValidationError(f"Invalid start date: {value!r}") from exc
    return date.today()


def build_rule(form_values: Mapping[str, Any]) -> Optional[RecurrenceRule]:
    """
    Build a recurrence rule from form values.

    Args:
        form_values: Mapping with keys type, interval, weekdays, day_type,
            day_of_month, weekday_ordinal, weekday, month, start_date.
            Numeric values may be strings.

    Returns:
        The typed rule, or None when type is absent or "none".

    Raises:
        ValidationError: If type, day_type or start_date cannot be interpreted
    """
    rule_type = form_values.get("type")
    rule_type = getattr(rule_type, "value", rule_type)
    if not rule_type or rule_type == "none":
        return None

    interval = _parse_int(form_values.get("interval"), 1)
    anchor_date = _parse_anchor(form_values.get("start_date"))

    if rule_type in _PRESET_VALUES:
        return preset_rule(RulePreset(rule_type), interval=interval, anchor_date=anchor_date)

    if rule_type == RecurrenceKind.DAILY:
        return DailyRule(interval=interval, anchor_date=anchor_date)

    if rule_type == RecurrenceKind.WEEKLY:
        raw_weekdays = form_values.get("weekdays") or []
        weekdays = [
            day for day in (_parse_int(v, None) for v in raw_weekdays) if day is not None
        ]
        return WeeklyRule(
            interval=interval,
            anchor_date=anchor_date,
            weekdays=sorted(set(weekdays)),
        )

    if rule_type in (RecurrenceKind.MONTHLY, RecurrenceKind.YEARLY):
        raw_day_type = form_values.get("day_type") or MonthlyDayType.DAY_OF_MONTH
        try:
            day_type = MonthlyDayType(raw_day_type)
        except ValueError as exc:
            raise ValidationError("Invalid day type", details={"day_type": raw_day_type}) from exc

        fields: dict[str, Any] = {
            "interval": interval,
            "anchor_date": anchor_date,
            "monthly_day_type": day_type,
        }
        if day_type == MonthlyDayType.DAY_OF_MONTH:
            fields["day_of_month"] = _parse_int(form_values.get("day_of_month"), None)
        elif day_type == MonthlyDayType.WEEKDAY:
            fields["weekday_ordinal"] = _parse_int(form_values.get("weekday_ordinal"), 1)
            fields["weekday"] = _parse_int(form_values.get("weekday"), None)

        if rule_type == RecurrenceKind.MONTHLY:
            return MonthlyRule(**fields)
        return YearlyRule(month=_parse_int(form_values.get("month"), None), **fields)

    raise ValidationError("Invalid recurrence type", details={"type": rule_type})


def validate_rule(rule: RecurrenceRule | Mapping[str, Any] | None) -> RuleValidation:
    """
    Check a rule against the allowed ranges.

    Accepts a typed rule or its raw mapping shape. Only the first violated
    constraint is reported.
    """
    if rule is None:
        return _fail("Rule is required")

    if isinstance(rule, Mapping):
        kind = rule.get("kind")
        if getattr(kind, "value", kind) not in _KIND_VALUES:
            return _fail("Invalid recurrence type")
        try:
            rule = parse_recurrence_rule(dict(rule))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"][1:])
            return _fail(f"Invalid value for {location}: {first['msg']}")

    if not isinstance(rule, _RULE_TYPES):
        return _fail("Invalid recurrence type")

    if not MIN_INTERVAL <= rule.interval <= MAX_INTERVAL:
        return _fail(f"Interval must be between {MIN_INTERVAL} and {MAX_INTERVAL}")

    if isinstance(rule, WeeklyRule):
        if not rule.weekdays:
            return _fail("At least one weekday must be selected for weekly recurrence")
        if any(day < 0 or day > 6 for day in rule.weekdays):
            return _fail("Weekdays must be between 0 (Sun) and 6 (Sat)")

    if isinstance(rule, (MonthlyRule, YearlyRule)):
        if rule.day_of_month is not None and not 1 <= rule.day_of_month <= 31:
            return _fail("Day of month must be between 1 and 31")
        if rule.weekday is not None and not 0 <= rule.weekday <= 6:
            return _fail("Weekday must be between 0 (Sun) and 6 (Sat)")
        if rule.weekday_ordinal not in VALID_ORDINALS:
            return _fail("Ordinal must be 1-5 or -1 (last)")

    if isinstance(rule, YearlyRule):
        if rule.month is not None and not 1 <= rule.month <= 12:
            return _fail("Month must be between 1 and 12")

    return _OK


def ensure_valid_rule(rule: RecurrenceRule | Mapping[str, Any] | None) -> RecurrenceRule:
    """Validate a rule and return it typed, raising ValidationError otherwise."""
    result = validate_rule(rule)
    if not result:
        raise ValidationError(result.error or "Invalid recurrence rule")
    if isinstance(rule, Mapping):
        return parse_recurrence_rule(dict(rule))
    return rule


# ===========================================
# Presets
# ===========================================


def preset_rule(
    preset: RulePreset,
    interval: Optional[int] = 1,
    anchor_date: Optional[date] = None,
) -> WeeklyRule:
    """Weekly rule for a weekday/weekend preset."""
    return WeeklyRule(
        interval=interval if interval is not None else 1,
        anchor_date=anchor_date or date.today(),
        weekdays=list(PRESET_WEEKDAYS[preset]),
    )


def detect_preset(rule: Optional[RecurrenceRule]) -> Optional[RulePreset]:
    """Return the preset a weekly rule corresponds to, if any."""
    if not isinstance(rule, WeeklyRule):
        return None
    selected = tuple(sorted(set(rule.weekdays)))
    for preset, days in PRESET_WEEKDAYS.items():
        if selected == days:
            return preset
    return None
