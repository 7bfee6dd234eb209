"""
Unit tests for calendars and date helpers.
"""

from datetime import date
import pytest

from spotcurve.dates import (
    Calendar,
    add_months,
    calendars,
    create_calendar,
    get_calendar,
    register_calendar,
)
from spotcurve.exceptions import InvalidArgument


class TestCalendar:
    """Tests for business-day calendars."""

    def test_builtin_calendars(self):
        """Actual and weekends calendars are always registered."""
        names = calendars()
        assert "actual" in names
        assert "weekends" in names

    def test_actual_counts_every_day(self):
        cal = get_calendar("actual")
        assert cal.bizdays(date(2024, 1, 15), date(2024, 1, 22)) == 7
        assert cal.is_bizday(date(2024, 1, 13))

    def test_weekends_skips_saturday_and_sunday(self):
        cal = get_calendar("weekends")
        # Monday to Monday
        assert cal.bizdays(date(2024, 1, 15), date(2024, 1, 22)) == 5
        assert not cal.is_bizday(date(2024, 1, 13))
        assert cal.is_bizday(date(2024, 1, 15))

    def test_bizdays_vectorized(self):
        cal = get_calendar("weekends")
        counts = cal.bizdays(
            [date(2024, 1, 15), date(2024, 1, 15)],
            [date(2024, 1, 22), date(2024, 1, 29)],
        )
        assert list(counts) == [5, 10]

    def test_add_bizdays(self):
        """Adding business days skips weekends."""
        cal = get_calendar("weekends")
        assert cal.add_bizdays(date(2024, 1, 19), 1) == date(2024, 1, 22)
        assert cal.add_bizdays(date(2024, 1, 22), -1) == date(2024, 1, 19)

    def test_add_bizdays_rolls_non_business_start(self):
        cal = get_calendar("weekends")
        assert cal.add_bizdays(date(2024, 1, 13), 0) == date(2024, 1, 15)

    def test_adjust(self):
        cal = get_calendar("weekends")
        assert cal.adjust_next(date(2024, 1, 13)) == date(2024, 1, 15)
        assert cal.adjust_previous(date(2024, 1, 13)) == date(2024, 1, 12)

    def test_holidays(self):
        """Holidays reduce the business day count."""
        cal = create_calendar("test-holiday-calendar", holidays=[date(2024, 1, 17)])
        assert cal.weekmask == "1111100"
        assert cal.bizdays(date(2024, 1, 15), date(2024, 1, 22)) == 4
        assert get_calendar("test-holiday-calendar") is cal

    def test_duplicate_registration(self):
        cal = Calendar("test-duplicate-calendar")
        register_calendar(cal)
        with pytest.raises(InvalidArgument):
            register_calendar(cal)
        replacement = Calendar("test-duplicate-calendar", weekmask="1111100")
        assert register_calendar(replacement, overwrite=True) is replacement

    def test_unknown_calendar(self):
        with pytest.raises(InvalidArgument):
            get_calendar("no-such-calendar")

    def test_invalid_weekmask(self):
        with pytest.raises(InvalidArgument):
            Calendar("broken", weekmask="11111")
        with pytest.raises(InvalidArgument):
            Calendar("broken", weekmask="0000000")

    def test_unknown_weekday(self):
        with pytest.raises(InvalidArgument):
            create_calendar("test-bad-weekday", weekdays=["funday"])


class TestAddMonths:
    """Tests for calendar month arithmetic."""

    def test_simple(self):
        assert add_months(date(2024, 1, 15), 6) == date(2024, 7, 15)

    def test_year_rollover(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_end_of_month_clipped(self):
        """Day of month is clipped to the target month length."""
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
