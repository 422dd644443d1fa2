"""Tests for core/policy and core/clock modules."""

from datetime import datetime, timedelta, timezone

import pytest

from salon_booking.core.clock import ensure_utc, utc_now
from salon_booking.core.exceptions import ValidationError
from salon_booking.core.policy import BookingPolicy, add_months


class TestAddMonths:
    def test_simple(self):
        start = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)
        assert add_months(start, 6) == datetime(2025, 7, 15, 9, 30, tzinfo=timezone.utc)

    def test_crosses_year(self):
        start = datetime(2025, 9, 1, tzinfo=timezone.utc)
        assert add_months(start, 6) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_clamps_day_to_month_end(self):
        start = datetime(2025, 8, 31, tzinfo=timezone.utc)
        assert add_months(start, 6) == datetime(2026, 2, 28, tzinfo=timezone.utc)

    def test_leap_year(self):
        start = datetime(2023, 8, 31, tzinfo=timezone.utc)
        assert add_months(start, 6) == datetime(2024, 2, 29, tzinfo=timezone.utc)


class TestValidateDuration:
    @pytest.fixture
    def policy(self):
        return BookingPolicy()

    @pytest.mark.parametrize("minutes", [15, 30, 45, 480])
    def test_accepts_valid(self, policy, minutes):
        assert policy.validate_duration(minutes) == minutes

    def test_rejects_zero(self, policy):
        with pytest.raises(ValidationError, match="greater than 0"):
            policy.validate_duration(0)

    def test_rejects_below_minimum(self, policy):
        with pytest.raises(ValidationError, match="Minimum appointment duration is 15 minutes"):
            policy.validate_duration(10)

    def test_rejects_above_maximum(self, policy):
        with pytest.raises(ValidationError, match="Maximum appointment duration is 480 minutes"):
            policy.validate_duration(495)

    def test_rejects_off_step(self, policy):
        with pytest.raises(ValidationError, match="15-minute increments") as exc_info:
            policy.validate_duration(50)
        assert exc_info.value.field == "duration_minutes"


class TestValidateNote:
    def test_none_passes_through(self):
        assert BookingPolicy().validate_note(None, "Notes") is None

    def test_strips(self):
        assert BookingPolicy().validate_note("  bring photos  ", "Notes") == "bring photos"

    def test_blank_rejected(self):
        with pytest.raises(ValidationError, match="Notes cannot be empty if provided"):
            BookingPolicy().validate_note("   ", "Notes")

    def test_too_long_rejected(self):
        policy = BookingPolicy(max_note_length=10)
        with pytest.raises(ValidationError, match="cannot exceed 10 characters"):
            policy.validate_note("x" * 11, "Cancellation reason")


class TestBookingHorizon:
    def test_six_months_ahead(self):
        now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert BookingPolicy().booking_horizon(now) == datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc)

    def test_configurable(self):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert BookingPolicy(booking_horizon_months=1).booking_horizon(now) == datetime(
            2025, 7, 1, tzinfo=timezone.utc
        )


class TestClock:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is timezone.utc

    def test_naive_treated_as_utc(self):
        naive = datetime(2025, 6, 2, 9, 0)
        assert ensure_utc(naive) == datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)

    def test_aware_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2025, 6, 2, 11, 0, tzinfo=plus_two)
        converted = ensure_utc(value)
        assert converted.hour == 9
        assert converted.utcoffset() == timedelta(0)
