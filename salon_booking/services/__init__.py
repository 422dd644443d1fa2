"""Scheduling services."""

from salon_booking.services.appointment_lifecycle import (
    ALLOWED_TRANSITIONS,
    AppointmentLifecycle,
    can_transition,
)
from salon_booking.services.availability import AvailabilityService, AvailableSlot, DayAvailability
from salon_booking.services.booking_orchestrator import BookingOrchestrator
from salon_booking.services.business_calendar import BusinessCalendar
from salon_booking.services.conflict_detector import ConflictDetector
from salon_booking.services.notification_policy import decide_notification

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AppointmentLifecycle",
    "can_transition",
    "AvailabilityService",
    "AvailableSlot",
    "DayAvailability",
    "BookingOrchestrator",
    "BusinessCalendar",
    "ConflictDetector",
    "decide_notification",
]
