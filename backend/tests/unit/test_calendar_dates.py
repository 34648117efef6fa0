"""
Unit tests for calendar date utilities.
"""

from datetime import date, timedelta

import pytest

from gtd_recurrence.utils.calendar_dates import (
    add_months,
    format_calendar_date,
    last_day_of_month,
    nth_weekday_of_month,
    parse_calendar_date,
    sunday_weekday,
)


class TestParseAndFormat:
    """Tests for YYYY-MM-DD parsing and formatting."""

    def test_parse_returns_naive_date(self):
        assert parse_calendar_date("2024-02-29") == date(2024, 2, 29)

    def test_parse_strips_whitespace(self):
        assert parse_calendar_date(" 2024-01-05 ") == date(2024, 1, 5)

    def test_parse_rejects_impossible_date(self):
        with pytest.raises(ValueError):
            parse_calendar_date("2023-02-29")

    def test_parse_rejects_other_formats(self):
        with pytest.raises(ValueError):
            parse_calendar_date("01/05/2024")

    def test_format_zero_pads(self):
        assert format_calendar_date(date(5, 1, 2)) == "0005-01-02"

    @pytest.mark.parametrize(
        "value",
        [date(2024, 1, 1), date(2024, 2, 29), date(1999, 12, 31), date(2100, 3, 1)],
    )
    def test_format_then_parse_is_identity(self, value):
        assert parse_calendar_date(format_calendar_date(value)) == value


class TestSundayWeekday:
    def test_sunday_is_zero(self):
        assert sunday_weekday(date(2024, 1, 7)) == 0

    def test_saturday_is_six(self):
        assert sunday_weekday(date(2024, 1, 6)) == 6

    def test_tuesday_is_two(self):
        assert sunday_weekday(date(2024, 1, 2)) == 2


class TestMonthArithmetic:
    def test_last_day_of_leap_february(self):
        assert last_day_of_month(2024, 2) == 29

    def test_last_day_of_common_february(self):
        assert last_day_of_month(2023, 2) == 28

    def test_last_day_of_thirty_day_month(self):
        assert last_day_of_month(2024, 4) == 30

    def test_add_months_rolls_year(self):
        assert add_months(2024, 11, 3) == (2025, 2)

    def test_add_months_backwards(self):
        assert add_months(2024, 1, -1) == (2023, 12)

    def test_add_months_multiple_years(self):
        assert add_months(2024, 1, 24) == (2026, 1)


class TestNthWeekdayOfMonth:
    """Tests for nth weekday lookup (0=Sunday)."""

    def test_second_tuesday(self):
        assert nth_weekday_of_month(2024, 1, 2, 2) == date(2024, 1, 9)

    def test_fifth_friday_missing_in_february_2024(self):
        # February 2024 has only four Fridays
        assert nth_weekday_of_month(2024, 2, 5, 5) is None

    def test_fifth_friday_present_in_march_2024(self):
        assert nth_weekday_of_month(2024, 3, 5, 5) == date(2024, 3, 29)

    def test_last_friday(self):
        assert nth_weekday_of_month(2024, 2, 5, -1) == date(2024, 2, 23)

    def test_first_weekday_on_day_one(self):
        # 2024-03-01 is a Friday
        assert nth_weekday_of_month(2024, 3, 5, 1) == date(2024, 3, 1)

    def test_invalid_ordinal_returns_none(self):
        assert nth_weekday_of_month(2024, 3, 5, 0) is None

    def test_last_always_resolves(self):
        for month in range(1, 13):
            for weekday in range(7):
                result = nth_weekday_of_month(2024, month, weekday, -1)
                assert result is not None
                assert result.month == month
                assert sunday_weekday(result) == weekday
                assert (result + timedelta(days=7)).month != month

    def test_out_of_range_weekday_returns_none(self):
        assert nth_weekday_of_month(2024, 3, 9, -1) is None
        assert nth_weekday_of_month(2024, 3, -1, 2) is None
