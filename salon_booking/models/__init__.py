"""Entities and database access."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .appointment import Appointment as Appointment
    from .appointment import AppointmentEvent as AppointmentEvent
    from .appointment import AppointmentStatistics as AppointmentStatistics
    from .appointment import AppointmentStatus as AppointmentStatus
    from .appointment import BookingRequest as BookingRequest
    from .appointment import RescheduleRequest as RescheduleRequest
    from .calendar import BusinessCalendarWindow as BusinessCalendarWindow
    from .calendar import Holiday as Holiday
    from .database import Database as Database

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    "Appointment": ("salon_booking.models.appointment", "Appointment"),
    "AppointmentEvent": ("salon_booking.models.appointment", "AppointmentEvent"),
    "AppointmentStatistics": ("salon_booking.models.appointment", "AppointmentStatistics"),
    "AppointmentStatus": ("salon_booking.models.appointment", "AppointmentStatus"),
    "BookingRequest": ("salon_booking.models.appointment", "BookingRequest"),
    "RescheduleRequest": ("salon_booking.models.appointment", "RescheduleRequest"),
    "BusinessCalendarWindow": ("salon_booking.models.calendar", "BusinessCalendarWindow"),
    "Holiday": ("salon_booking.models.calendar", "Holiday"),
    "Database": ("salon_booking.models.database", "Database"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
