"""Tests for duration calculation and validation."""

import pytest

from core.duration import (
    DurationValidationError,
    calculate_duration,
    calculate_request_duration,
    days_in_range,
    format_duration,
    sum_durations,
    validate_duration,
)


class TestCalculateDuration:
    """Priority order: explicit value, half day, date range, zero."""

    def test_half_day(self):
        assert calculate_duration(is_half_day=True, start_date="2025-01-15", end_date="2025-01-15") == 0.5

    def test_single_day(self):
        assert calculate_duration(is_half_day=False, start_date="2025-01-15", end_date="2025-01-15") == 1

    def test_inclusive_range(self):
        assert calculate_duration(start_date="2025-01-15", end_date="2025-01-17") == 3

    def test_explicit_duration_wins(self):
        assert calculate_duration(duration_days=1.5, is_half_day=True, start_date="2025-01-15") == 1.5

    def test_non_positive_explicit_duration_is_ignored(self):
        assert calculate_duration(duration_days=0, start_date="2025-01-15", end_date="2025-01-16") == 2

    def test_boolean_is_not_a_duration(self):
        assert calculate_duration(duration_days=True, start_date="2025-01-15", end_date="2025-01-16") == 2

    def test_truthy_half_day_flag_must_be_true(self):
        assert calculate_duration(is_half_day="yes", start_date="2025-01-15") == 1

    def test_end_defaults_to_start(self):
        assert calculate_duration(start_date="2025-01-15") == 1

    def test_no_start_date(self):
        assert calculate_duration() == 0

    def test_invalid_dates(self):
        assert calculate_duration(start_date="not-a-date") == 0

    def test_reversed_range_counts_one_day(self):
        assert days_in_range("2025-01-17", "2025-01-15") == 1

    def test_datetime_strings_are_cut_to_dates(self):
        assert days_in_range("2025-01-15T23:00:00Z", "2025-01-16T01:00:00Z") == 2


def test_calculate_request_duration(sample_request):
    assert calculate_request_duration(sample_request) == 5


def test_validate_duration_rejects_zero_for_approved():
    with pytest.raises(DurationValidationError):
        validate_duration({"id": "x", "status": "Approved", "start_date": None})


def test_validate_duration_rejects_zero_for_reviewed():
    with pytest.raises(DurationValidationError):
        validate_duration({"id": "x", "status": "Denied", "reviewed_at": "2025-01-01T00:00:00Z"})


def test_validate_duration_allows_zero_for_pending():
    assert validate_duration({"id": "x", "status": "Pending"}) == 0


def test_sum_durations_preserves_fractions():
    assert sum_durations([0.5, 1.5, 3, None]) == 5.0


@pytest.mark.parametrize(
    "days, text",
    [(0.5, "0.5 day"), (1, "1 day"), (1.5, "1.5 days"), (3, "3 days"), (3.0, "3 days")],
)
def test_format_duration(days, text):
    assert format_duration(days) == text
