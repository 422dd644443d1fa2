"""Repository pattern implementation for data access layer."""

from salon_booking.repositories.appointment_event_repository import AppointmentEventRepository
from salon_booking.repositories.appointment_repository import AppointmentRepository
from salon_booking.repositories.appointment_status_repository import AppointmentStatusRepository
from salon_booking.repositories.base import BaseRepository
from salon_booking.repositories.calendar_window_repository import CalendarWindowRepository
from salon_booking.repositories.directory_repository import DirectoryRepository

__all__ = [
    "AppointmentEventRepository",
    "AppointmentRepository",
    "AppointmentStatusRepository",
    "BaseRepository",
    "CalendarWindowRepository",
    "DirectoryRepository",
]
