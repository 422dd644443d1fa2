"""Scheduling policy values injected into the lifecycle and orchestrator."""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from salon_booking.constants import BookingDefaults
from salon_booking.core.exceptions import ValidationError
from salon_booking.core.settings import BookingSettings, get_settings


def add_months(moment: datetime, months: int) -> datetime:
    """
    Shift a datetime by whole calendar months, clamping the day to the month's end.

    Args:
        moment: Starting instant
        months: Number of months to add

    Returns:
        Shifted datetime with the same time of day and tzinfo
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class BookingPolicy:
    """Tunable scheduling rules."""

    cancellation_window: timedelta = timedelta(hours=BookingDefaults.CANCELLATION_WINDOW_HOURS)
    confirmation_lead: timedelta = timedelta(minutes=BookingDefaults.CONFIRMATION_LEAD_MINUTES)
    booking_horizon_months: int = BookingDefaults.BOOKING_HORIZON_MONTHS
    duration_step_minutes: int = BookingDefaults.DURATION_STEP_MINUTES
    min_duration_minutes: int = BookingDefaults.MIN_DURATION_MINUTES
    max_duration_minutes: int = BookingDefaults.MAX_DURATION_MINUTES
    default_slot_minutes: int = BookingDefaults.DEFAULT_SLOT_MINUTES
    min_calendar_window_minutes: int = BookingDefaults.MIN_CALENDAR_WINDOW_MINUTES
    enforce_business_hours: bool = True
    admin_bypasses_cancellation_window: bool = False
    max_note_length: int = BookingDefaults.MAX_NOTE_LENGTH

    @classmethod
    def from_settings(cls, settings: Optional[BookingSettings] = None) -> "BookingPolicy":
        """Build the policy from application settings."""
        settings = settings or get_settings()
        return cls(
            cancellation_window=timedelta(hours=settings.cancellation_window_hours),
            confirmation_lead=timedelta(minutes=settings.confirmation_lead_minutes),
            booking_horizon_months=settings.booking_horizon_months,
            duration_step_minutes=settings.duration_step_minutes,
            min_duration_minutes=settings.min_duration_minutes,
            max_duration_minutes=settings.max_duration_minutes,
            default_slot_minutes=settings.default_slot_minutes,
            min_calendar_window_minutes=settings.min_calendar_window_minutes,
            enforce_business_hours=settings.enforce_business_hours,
            admin_bypasses_cancellation_window=settings.admin_bypasses_cancellation_window,
            max_note_length=settings.max_note_length,
        )

    def booking_horizon(self, now: datetime) -> datetime:
        """Latest instant an appointment may start."""
        return add_months(now, self.booking_horizon_months)

    def validate_duration(self, minutes: int, field: str = "duration_minutes") -> int:
        """
        Check a caller-supplied duration against range and step.

        Raises:
            ValidationError: If the duration is out of policy
        """
        if minutes is None or minutes <= 0:
            raise ValidationError("Duration must be greater than 0", field=field)
        if minutes < self.min_duration_minutes:
            raise ValidationError(
                f"Minimum appointment duration is {self.min_duration_minutes} minutes", field=field
            )
        if minutes > self.max_duration_minutes:
            raise ValidationError(
                f"Maximum appointment duration is {self.max_duration_minutes} minutes", field=field
            )
        if minutes % self.duration_step_minutes != 0:
            raise ValidationError(
                f"Duration must be in {self.duration_step_minutes}-minute increments", field=field
            )
        return minutes

    def validate_note(self, value: Optional[str], field: str) -> Optional[str]:
        """
        Notes and reasons are optional but must be non-blank and bounded when given.

        Returns:
            The stripped text, or None when not provided
        """
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} cannot be empty if provided", field=field)
        if len(stripped) > self.max_note_length:
            raise ValidationError(
                f"{field} cannot exceed {self.max_note_length} characters", field=field
            )
        return stripped
