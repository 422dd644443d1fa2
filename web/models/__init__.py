"""Pydantic models for the salon booking API."""

from .appointments import (
    AppointmentCreateRequest,
    AppointmentEventResponse,
    AppointmentResponse,
    CancelAppointmentRequest,
    CloseAppointmentRequest,
    ConfirmAppointmentRequest,
    DayAvailabilityResponse,
)
from .calendar import CalendarWindowCreateRequest, CalendarWindowResponse

__all__ = [
    # Appointment models
    "AppointmentCreateRequest",
    "AppointmentEventResponse",
    "AppointmentResponse",
    "CancelAppointmentRequest",
    "CloseAppointmentRequest",
    "ConfirmAppointmentRequest",
    "DayAvailabilityResponse",
    # Calendar models
    "CalendarWindowCreateRequest",
    "CalendarWindowResponse",
]
