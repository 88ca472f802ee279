"""Tests for the business-calendar clock in Delivery Metrics."""

import pytest

from .business_calendar import (
    BusinessCalendar,
    business_hours,
    business_hours_to_days,
    format_duration,
)
from .config.exceptions import MetricsInputError


def test_same_day():
    """Test an interval inside one working day."""
    assert business_hours("2024-01-08T10:00:00Z", "2024-01-08T15:00:00Z") == 5.0


def test_spans_weekend():
    """Friday 16:00 to Monday 11:00 is two hours each side of the weekend."""
    assert business_hours("2024-01-05T16:00:00Z", "2024-01-08T11:00:00Z") == 4.0


def test_weekend_only():
    """Test that weekends never count."""
    assert business_hours("2024-01-06T09:00:00Z", "2024-01-07T18:00:00Z") == 0.0


def test_outside_working_hours():
    """Test that only the overlap with working hours counts."""
    assert business_hours("2024-01-08T07:00:00Z", "2024-01-08T08:30:00Z") == 0.0
    assert business_hours("2024-01-08T07:00:00Z", "2024-01-08T10:00:00Z") == 1.0
    assert business_hours("2024-01-08T17:30:00Z", "2024-01-08T23:00:00Z") == 0.5


def test_full_week():
    """Five working days of nine hours."""
    assert business_hours("2024-01-08T00:00:00Z", "2024-01-15T00:00:00Z") == 45.0


def test_inverted_and_equal_intervals():
    """Test that inverted intervals are clipped to zero."""
    assert business_hours("2024-01-08T15:00:00Z", "2024-01-08T10:00:00Z") == 0.0
    assert business_hours("2024-01-08T10:00:00Z", "2024-01-08T10:00:00Z") == 0.0


def test_unparsable_timestamp_counts_zero():
    """Test that a bad timestamp degrades to zero rather than raising."""
    assert business_hours("not a date", "2024-01-08T10:00:00Z") == 0.0
    assert business_hours("2024-01-08T10:00:00Z", None) == 0.0


def test_mixed_naive_and_aware():
    """Naive timestamps are read as UTC."""
    assert business_hours("2024-01-08T10:00:00", "2024-01-08T12:00:00+00:00") == 2.0


def test_additive():
    """Splitting an interval never changes its total."""
    a = "2024-01-05T11:15:00Z"
    b = "2024-01-07T10:00:00Z"
    c = "2024-01-09T16:45:00Z"

    assert business_hours(a, c) == pytest.approx(
        business_hours(a, b) + business_hours(b, c)
    )


def test_calendar_timezone():
    """Working hours are applied in the calendar's timezone."""
    new_york = BusinessCalendar(timezone="America/New_York")
    start = "2024-01-08T14:00:00Z"  # 09:00 in New York
    end = "2024-01-08T23:00:00Z"  # 18:00 in New York

    assert business_hours(start, end, new_york) == 9.0
    assert business_hours(start, end) == 4.0


def test_custom_working_hours():
    """Test a calendar with different days and hours."""
    calendar = BusinessCalendar(work_days=(0, 1, 2, 3, 4, 5), work_end_hour=17)

    saturday = ("2024-01-06T08:00:00Z", "2024-01-06T20:00:00Z")

    assert business_hours(*saturday, calendar) == 8.0


def test_invalid_calendar():
    """Test that impossible working hours are rejected."""
    with pytest.raises(MetricsInputError):
        BusinessCalendar(work_start_hour=18, work_end_hour=9)
    with pytest.raises(MetricsInputError):
        BusinessCalendar(work_days=(7,))


def test_business_hours_to_days():
    """Eight business hours make a business day."""
    assert business_hours_to_days(0) == 0.0
    assert business_hours_to_days(8) == 1.0
    assert business_hours_to_days(12) == 1.5
    assert business_hours_to_days(20) == 2.5
    assert business_hours_to_days(11) == 1.4


def test_format_duration():
    """Test minute, hour and day formatting."""
    assert format_duration(0.5) == "30m"
    assert format_duration(3.5) == "3.5h"
    assert format_duration(2.0) == "2h"
    assert format_duration(48) == "2d"
    assert format_duration(52.5) == "2d 4.5h"
