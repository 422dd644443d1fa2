"""Time-slot conflict detection against existing appointments."""

from datetime import datetime
from typing import List, Optional

from loguru import logger

from salon_booking.core.clock import ensure_utc
from salon_booking.core.exceptions import SlotUnavailableError, ValidationError
from salon_booking.models.appointment import Appointment
from salon_booking.services.collaborators import AppointmentStore


class ConflictDetector:
    """Reports slot-holding appointments overlapping a candidate interval."""

    def __init__(self, appointments: AppointmentStore):
        self.appointments = appointments

    async def find_conflicts(
        self,
        start: datetime,
        end: datetime,
        staff_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Find appointments on a staff member's timeline that overlap [start, end).

        Cancelled and no-show appointments never conflict. Without a staff member
        there is no per-staff timeline to check and the result is empty.

        Args:
            start: Candidate slot start
            end: Candidate slot end (exclusive)
            staff_id: Staff member whose timeline is checked
            exclude_id: Appointment to ignore, e.g. the one being rescheduled

        Returns:
            Conflicting appointments, empty when the slot is free
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        if end <= start:
            raise ValidationError("Slot end must be after its start", field="end_time")

        if staff_id is None:
            logger.debug(f"Unassigned slot {start.isoformat()}: per-staff conflict check skipped")
            return []

        conflicts = await self.appointments.find_overlapping(
            start, end, staff_id=staff_id, exclude_id=exclude_id
        )
        if conflicts:
            logger.debug(
                f"Staff {staff_id} has {len(conflicts)} conflicting appointment(s) "
                f"for {start.isoformat()}-{end.isoformat()}"
            )
        return conflicts

    async def ensure_available(
        self, start: datetime, end: datetime, staff_id: Optional[str] = None
    ) -> None:
        """
        Raises:
            SlotUnavailableError: If any conflict exists
        """
        conflicts = await self.find_conflicts(start, end, staff_id=staff_id)
        if conflicts:
            raise SlotUnavailableError(
                "Time slot unavailable: there are conflicting appointments at this time",
                conflicting_ids=[a.id for a in conflicts],
            )
