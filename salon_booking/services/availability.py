"""Day availability: candidate slots inside operating hours, marked free or taken."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from salon_booking.core.clock import Clock, ensure_utc, utc_now
from salon_booking.core.enums import DayOfWeek
from salon_booking.core.exceptions import BusinessRuleViolation, ValidationError
from salon_booking.core.policy import BookingPolicy
from salon_booking.models.appointment import Appointment
from salon_booking.models.calendar import BusinessCalendarWindow, format_clock, minutes_of
from salon_booking.services.business_calendar import BusinessCalendar
from salon_booking.services.collaborators import AppointmentStore


@dataclass
class AvailableSlot:
    time: str
    duration_minutes: int
    available: bool
    conflict_reason: Optional[str] = None
    overlapping_appointments: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "duration_minutes": self.duration_minutes,
            "available": self.available,
            "conflict_reason": self.conflict_reason,
            "overlapping_appointments": self.overlapping_appointments,
        }


@dataclass
class DayAvailability:
    date: date
    day_of_week: DayOfWeek
    is_working_day: bool
    working_windows: List[BusinessCalendarWindow] = field(default_factory=list)
    slots: List[AvailableSlot] = field(default_factory=list)

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots(self) -> int:
        return sum(1 for slot in self.slots if slot.available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week.value,
            "is_working_day": self.is_working_day,
            "total_slots": self.total_slots,
            "available_slots": self.available_slots,
            "working_hours": [
                {"start": format_clock(w.start_time), "end": format_clock(w.end_time)}
                for w in self.working_windows
            ],
            "slots": [slot.to_dict() for slot in self.slots],
        }


class AvailabilityService:
    """Lists bookable slots for a day, optionally for one staff member."""

    def __init__(
        self,
        appointments: AppointmentStore,
        calendar: BusinessCalendar,
        policy: Optional[BookingPolicy] = None,
        clock: Clock = utc_now,
    ):
        self.appointments = appointments
        self.calendar = calendar
        self.policy = policy or BookingPolicy()
        self.clock = clock

    async def day_availability(
        self,
        day: Union[date, str],
        duration_minutes: Optional[int] = None,
        staff_id: Optional[str] = None,
    ) -> DayAvailability:
        """
        Compute slot availability for a date.

        Slots start at each window's opening and advance by the requested
        duration. A slot is taken when it has already started or, for a
        ``staff_id``, overlaps one of that staff member's slot-holding
        appointments. Unassigned bookings have no per-staff timeline, so
        without ``staff_id`` overlapping appointments are only counted in
        ``overlapping_appointments`` and never make a slot unavailable.

        Raises:
            ValidationError: Malformed date or duration
            BusinessRuleViolation: Date in the past or beyond the booking horizon
        """
        day = _parse_day(day)
        duration = (
            self.policy.validate_duration(duration_minutes, field="duration")
            if duration_minutes is not None
            else self.policy.default_slot_minutes
        )

        now = ensure_utc(self.clock())
        if day < now.date():
            raise BusinessRuleViolation("Cannot check availability for past dates")
        if day > self.policy.booking_horizon(now).date():
            raise BusinessRuleViolation(
                f"Cannot check availability more than {self.policy.booking_horizon_months} months in advance"
            )

        weekday = DayOfWeek.from_weekday(day.weekday())
        windows = await self.calendar.windows_for_date(day)
        if not windows:
            return DayAvailability(date=day, day_of_week=weekday, is_working_day=False)

        day_start = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
        existing = await self.appointments.find_overlapping(
            day_start, day_start + timedelta(days=1), staff_id=staff_id
        )

        # Unassigned bookings skip the conflict check, so overlaps only inform
        blocking = staff_id is not None
        slots: List[AvailableSlot] = []
        step = timedelta(minutes=duration)
        for window in windows:
            offset = minutes_of(window.start_time)
            while offset + duration <= minutes_of(window.end_time):
                slot_start = day_start + timedelta(minutes=offset)
                slots.append(
                    self._slot(slot_start, slot_start + step, duration, existing, now, blocking)
                )
                offset += duration

        result = DayAvailability(
            date=day,
            day_of_week=weekday,
            is_working_day=True,
            working_windows=windows,
            slots=slots,
        )
        logger.debug(
            f"Availability {day.isoformat()} staff={staff_id or 'any'}: "
            f"{result.available_slots}/{result.total_slots} free"
        )
        return result

    @staticmethod
    def _slot(
        start: datetime,
        end: datetime,
        duration: int,
        existing: List[Appointment],
        now: datetime,
        blocking: bool,
    ) -> AvailableSlot:
        label = start.strftime("%H:%M")
        overlapping = [a for a in existing if a.overlaps(start, end)]
        if start <= now:
            return AvailableSlot(label, duration, False, "Slot has already started", len(overlapping))
        if blocking and overlapping:
            first = ensure_utc(overlapping[0].start_time).strftime("%H:%M")
            return AvailableSlot(
                label, duration, False, f"Conflicts with existing appointment ({first})", len(overlapping)
            )
        return AvailableSlot(label, duration, True, overlapping_appointments=len(overlapping))


def _parse_day(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise ValidationError("Date is required", field="date")
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format", field="date")
