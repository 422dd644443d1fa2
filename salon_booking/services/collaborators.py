"""
Interfaces the scheduling core depends on.

Lookups return ``None`` (or an empty list) when nothing matches; the core decides
which missing entity is an error and raises ``NotFoundError`` naming it.
Postgres implementations live in ``salon_booking.repositories``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from salon_booking.core.enums import Capability, DayOfWeek
from salon_booking.models.appointment import (
    Appointment,
    AppointmentEvent,
    AppointmentStatus,
    AppointmentUpdate,
    StatusChange,
)
from salon_booking.models.calendar import BusinessCalendarWindow


class OfferingLookup(ABC):
    """Service catalog, consulted only for durations."""

    @abstractmethod
    async def find_offering_duration(self, service_id: str) -> Optional[int]:
        """Duration in minutes of a service, or None when it does not exist."""

    async def find_offering_durations(self, service_ids: List[str]) -> Dict[str, int]:
        """
        Durations for a set of services, keyed by id.

        Missing services are absent from the result. Implementations may
        override this with a single round trip.
        """
        durations: Dict[str, int] = {}
        for service_id in dict.fromkeys(service_ids):
            duration = await self.find_offering_duration(service_id)
            if duration is not None:
                durations[service_id] = duration
        return durations


class ClientDirectory(ABC):
    @abstractmethod
    async def find_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        """Client record or None."""


class StaffDirectory(ABC):
    @abstractmethod
    async def find_staff(self, staff_id: str) -> Optional[Dict[str, Any]]:
        """Staff member record or None."""


class CapabilityChecker(ABC):
    @abstractmethod
    async def has_capability(self, user_id: str, capability: Capability) -> bool:
        """Whether the user holds the capability."""


class StatusCatalog(ABC):
    """Keyed access to the appointment status catalog."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[AppointmentStatus]:
        pass

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[AppointmentStatus]:
        pass

    @abstractmethod
    async def find_all(self) -> List[AppointmentStatus]:
        pass


class CalendarWindowCatalog(ABC):
    """Operating-hours windows and the holidays that override them."""

    @abstractmethod
    async def find_windows_for_weekday(self, weekday: DayOfWeek) -> List[BusinessCalendarWindow]:
        """Plain weekday windows (no holiday reference)."""

    @abstractmethod
    async def find_windows_for_holiday(self, holiday_id: int) -> List[BusinessCalendarWindow]:
        pass

    @abstractmethod
    async def find_holiday_ids_for_date(self, day: date) -> List[int]:
        pass

    @abstractmethod
    async def find_all(self) -> List[BusinessCalendarWindow]:
        pass

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[BusinessCalendarWindow]:
        pass

    @abstractmethod
    async def create(self, window: BusinessCalendarWindow) -> BusinessCalendarWindow:
        """Persist a window and return it with its id assigned."""

    @abstractmethod
    async def delete(self, id: int) -> bool:
        pass


class AppointmentStore(ABC):
    """Appointment persistence with the storage-level slot guarantees."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    async def get_by_client(self, client_id: str, limit: int = 100) -> List[Appointment]:
        pass

    @abstractmethod
    async def get_by_staff(self, staff_id: str, limit: int = 100) -> List[Appointment]:
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        staff_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Slot-holding appointments whose [start, end) overlaps the range.

        ``staff_id=None`` searches across all staff.
        """

    @abstractmethod
    async def create(self, appointment: Appointment, event: AppointmentEvent) -> Appointment:
        """
        Insert an appointment together with its BOOKED event.

        Raises:
            SlotUnavailableError: If the staff member's timeline already holds
                an overlapping slot-holding appointment
        """

    @abstractmethod
    async def apply_transition(self, change: StatusChange, event: AppointmentEvent) -> Appointment:
        """
        Compare-and-swap the status and record the event in one transaction.

        Raises:
            ConcurrentModificationError: If the stored status is no longer
                ``change.expected_status_id``
        """

    @abstractmethod
    async def update_schedule(self, update: AppointmentUpdate, event: AppointmentEvent) -> Appointment:
        """
        Move or re-scope an appointment and record the event in one transaction.

        The write only applies while the stored status is still
        ``update.expected_status_id``.

        Raises:
            ConcurrentModificationError: If the status changed since it was read
            SlotUnavailableError: If the new slot overlaps another slot-holding
                appointment of the same staff member
        """

    @abstractmethod
    async def find_in_range(
        self,
        start: datetime,
        end: datetime,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[Appointment]:
        """Appointments starting in [start, end), any status, earliest first."""

    @abstractmethod
    async def count_by_status(
        self,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Number of appointments per status name, optionally narrowed."""
