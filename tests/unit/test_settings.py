"""Tests for core/settings and core/policy configuration."""

from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from salon_booking.core.policy import BookingPolicy
from salon_booking.core.settings import BookingSettings, get_settings, reset_settings


class TestBookingSettings:
    def test_defaults(self):
        settings = BookingSettings()
        assert settings.env == "testing"
        assert settings.cancellation_window_hours == 2
        assert settings.booking_horizon_months == 6
        assert settings.duration_step_minutes == 15
        assert settings.min_duration_minutes == 15
        assert settings.max_duration_minutes == 480
        assert settings.enforce_business_hours is True
        assert settings.admin_bypasses_cancellation_window is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CANCELLATION_WINDOW_HOURS", "4")
        monkeypatch.setenv("ADMIN_BYPASSES_CANCELLATION_WINDOW", "true")
        settings = BookingSettings()
        assert settings.cancellation_window_hours == 4
        assert settings.admin_bypasses_cancellation_window is True

    def test_invalid_env_rejected(self, monkeypatch):
        monkeypatch.setenv("ENV", "qa")
        with pytest.raises(PydanticValidationError):
            BookingSettings()

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert BookingSettings().log_level == "DEBUG"

    def test_invalid_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "verbose")
        with pytest.raises(PydanticValidationError):
            BookingSettings()

    def test_min_duration_must_align_with_step(self, monkeypatch):
        monkeypatch.setenv("MIN_DURATION_MINUTES", "20")
        with pytest.raises(PydanticValidationError):
            BookingSettings()

    def test_min_duration_cannot_exceed_max(self, monkeypatch):
        monkeypatch.setenv("MIN_DURATION_MINUTES", "60")
        monkeypatch.setenv("MAX_DURATION_MINUTES", "30")
        with pytest.raises(PydanticValidationError):
            BookingSettings()

    def test_singleton(self):
        assert get_settings() is get_settings()
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_environment_helpers(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        settings = BookingSettings()
        assert settings.is_production()
        assert not settings.is_development()


class TestPolicyFromSettings:
    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("CANCELLATION_WINDOW_HOURS", "3")
        monkeypatch.setenv("BOOKING_HORIZON_MONTHS", "2")
        monkeypatch.setenv("ENFORCE_BUSINESS_HOURS", "false")
        policy = BookingPolicy.from_settings(BookingSettings())
        assert policy.cancellation_window == timedelta(hours=3)
        assert policy.booking_horizon_months == 2
        assert policy.enforce_business_hours is False

    def test_from_settings_uses_singleton(self):
        assert BookingPolicy.from_settings() == BookingPolicy()

    def test_confirmation_lead_from_settings(self, monkeypatch):
        monkeypatch.setenv("CONFIRMATION_LEAD_MINUTES", "90")
        policy = BookingPolicy.from_settings(BookingSettings())
        assert policy.confirmation_lead == timedelta(minutes=90)
