"""Unit tests for date-only helpers."""

from datetime import date, datetime

import pytest

from src.core.dates import (
    DateProximity,
    date_proximity,
    days_between,
    end_of_month,
    end_of_week,
    format_date_key,
    is_overdue,
    parse_date,
    start_of_week,
    to_calendar_date,
)


@pytest.mark.unit
class TestToCalendarDate:
    def test_plain_date_string(self):
        assert to_calendar_date("2025-01-10") == date(2025, 1, 10)

    def test_timestamp_string_drops_time_of_day(self):
        assert to_calendar_date("2025-01-10T23:59:59+05:00") == date(2025, 1, 10)

    def test_datetime_is_truncated(self):
        assert to_calendar_date(datetime(2025, 1, 10, 18, 30)) == date(2025, 1, 10)

    @pytest.mark.parametrize("value", ["", "   ", "not-a-date", "2025-13-45"])
    def test_invalid_values_raise(self, value):
        with pytest.raises(ValueError, match="Invalid date value"):
            to_calendar_date(value)

    def test_parse_date_returns_none_for_garbage(self):
        assert parse_date("garbage") is None
        assert parse_date(None) is None

    def test_format_date_key(self):
        assert format_date_key(datetime(2025, 3, 5, 12, 0)) == "2025-03-05"


@pytest.mark.unit
class TestWeeksAndMonths:
    def test_start_of_week_sunday(self):
        # 2025-03-01 is a Saturday
        assert start_of_week(date(2025, 3, 1)) == date(2025, 2, 23)

    def test_start_of_week_monday(self):
        assert start_of_week(date(2025, 3, 1), week_starts_on=1) == date(2025, 2, 24)

    def test_sunday_starts_its_own_week(self):
        assert start_of_week(date(2025, 3, 2)) == date(2025, 3, 2)

    def test_end_of_week(self):
        assert end_of_week(date(2025, 3, 31)) == date(2025, 4, 5)

    def test_end_of_month_handles_leap_years(self):
        assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
        assert end_of_month(date(2025, 2, 10)) == date(2025, 2, 28)
        assert end_of_month(date(2025, 12, 1)) == date(2025, 12, 31)

    def test_days_between_is_inclusive(self):
        days = days_between(date(2025, 1, 30), date(2025, 2, 2))
        assert days == [date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2)]

    def test_days_between_reversed_range_is_empty(self):
        assert days_between(date(2025, 2, 2), date(2025, 1, 30)) == []


@pytest.mark.unit
class TestProximity:
    reference = date(2025, 1, 10)

    def test_due_today_is_not_overdue(self):
        assert not is_overdue(self.reference, reference=self.reference)
        assert is_overdue(date(2025, 1, 9), reference=self.reference)

    @pytest.mark.parametrize(
        ("due", "expected"),
        [
            (date(2025, 1, 9), DateProximity.OVERDUE),
            (date(2025, 1, 10), DateProximity.TODAY),
            (date(2025, 1, 11), DateProximity.TOMORROW),
            (date(2025, 1, 17), DateProximity.THIS_WEEK),
            (date(2025, 1, 18), DateProximity.LATER),
        ],
    )
    def test_date_proximity(self, due, expected):
        assert date_proximity(due, reference=self.reference) == expected

    def test_date_proximity_accepts_strings(self):
        assert date_proximity("2025-01-11T08:00:00Z", reference=self.reference) == DateProximity.TOMORROW

    def test_date_proximity_unparseable(self):
        assert date_proximity("soon", reference=self.reference) is None
