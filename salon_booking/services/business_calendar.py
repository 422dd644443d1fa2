"""Business calendar: operating-hours lookup and calendar administration."""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

from loguru import logger

from salon_booking.core.clock import ensure_utc
from salon_booking.core.enums import DayOfWeek
from salon_booking.core.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from salon_booking.core.policy import BookingPolicy
from salon_booking.models.calendar import BusinessCalendarWindow, format_clock
from salon_booking.services.collaborators import CalendarWindowCatalog

OUTSIDE_BUSINESS_HOURS = "Requested time is outside business hours"
CLOSED_DAY = "No operating hours configured for this day"


class BusinessCalendar:
    """
    Resolves which operating window governs a date or slot.

    Holiday windows replace the plain weekday windows for their date. A holiday
    with no windows of its own closes the business for that date.
    """

    def __init__(self, windows: CalendarWindowCatalog, policy: Optional[BookingPolicy] = None):
        self.windows = windows
        self.policy = policy or BookingPolicy()

    @staticmethod
    def overlaps(window_a: BusinessCalendarWindow, window_b: BusinessCalendarWindow) -> bool:
        """Half-open overlap: a.start < b.end and b.start < a.end."""
        return window_a.overlaps(window_b)

    async def windows_for_date(self, day: Union[date, datetime]) -> List[BusinessCalendarWindow]:
        """
        All windows in force on a date, ordered by start time.

        Args:
            day: Calendar date (datetimes are reduced to their UTC date)

        Returns:
            Possibly empty list of windows
        """
        day = _as_date(day)
        holiday_ids = await self.windows.find_holiday_ids_for_date(day)
        if holiday_ids:
            found: List[BusinessCalendarWindow] = []
            for holiday_id in holiday_ids:
                found.extend(await self.windows.find_windows_for_holiday(holiday_id))
        else:
            found = await self.windows.find_windows_for_weekday(DayOfWeek.from_weekday(day.weekday()))
        return sorted(found, key=lambda w: w.start_time)

    async def window_for(self, day: Union[date, datetime]) -> BusinessCalendarWindow:
        """
        Primary window for a date.

        Raises:
            NotFoundError: If the business is closed that day
        """
        day = _as_date(day)
        windows = await self.windows_for_date(day)
        if not windows:
            weekday = DayOfWeek.from_weekday(day.weekday())
            raise NotFoundError("BusinessCalendarWindow", f"{weekday.value} {day.isoformat()}", CLOSED_DAY)
        return windows[0]

    async def window_for_slot(self, start: datetime, end: datetime) -> BusinessCalendarWindow:
        """
        Window that fully contains the slot [start, end).

        Raises:
            NotFoundError: If the business is closed that day
            BusinessRuleViolation: If no window of that day contains the slot
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        windows = await self.windows_for_date(start)
        if not windows:
            weekday = DayOfWeek.from_weekday(start.weekday())
            raise NotFoundError(
                "BusinessCalendarWindow", f"{weekday.value} {start.date().isoformat()}", CLOSED_DAY
            )

        slot_start = start.time()
        slot_end = _end_clock(start, end)
        if slot_end is not None:
            for window in windows:
                if window.contains(slot_start, slot_end):
                    return window

        logger.warning(
            f"Slot {start.isoformat()}-{end.isoformat()} outside business hours "
            f"({', '.join(f'{format_clock(w.start_time)}-{format_clock(w.end_time)}' for w in windows)})"
        )
        raise BusinessRuleViolation(
            OUTSIDE_BUSINESS_HOURS,
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )

    async def add_window(
        self,
        weekday: Union[DayOfWeek, str],
        start_time: Union[str, time],
        end_time: Union[str, time],
        holiday_id: Optional[int] = None,
    ) -> BusinessCalendarWindow:
        """
        Add an operating window.

        Raises:
            ValidationError: Malformed times, start >= end, or window too short
            ConflictError: Overlaps a window of the same weekday and holiday scope
        """
        candidate = BusinessCalendarWindow(weekday, start_time, end_time, holiday_id=holiday_id)
        if candidate.duration_minutes < self.policy.min_calendar_window_minutes:
            raise ValidationError(
                f"Calendar window must be at least {self.policy.min_calendar_window_minutes} minutes long",
                field="end_time",
            )

        if holiday_id is not None:
            existing = await self.windows.find_windows_for_holiday(holiday_id)
        else:
            existing = await self.windows.find_windows_for_weekday(candidate.weekday)

        clashes = [w for w in existing if w.same_scope(candidate) and self.overlaps(w, candidate)]
        if clashes:
            raise ConflictError(
                f"Calendar window overlaps an existing window for {candidate.weekday.value}",
                details={"conflicting_window_ids": [w.id for w in clashes]},
            )

        created = await self.windows.create(candidate)
        logger.info(f"Calendar window {created.id} added: {created!r}")
        return created

    async def list_windows(self) -> List[BusinessCalendarWindow]:
        windows = await self.windows.find_all()
        order = DayOfWeek.values()
        return sorted(
            windows,
            key=lambda w: (w.holiday_id is not None, w.holiday_id or 0, order.index(w.weekday.value), w.start_time),
        )

    async def remove_window(self, window_id: int) -> None:
        """
        Delete a window.

        Raises:
            NotFoundError: If no such window exists
        """
        if not await self.windows.delete(window_id):
            raise NotFoundError("BusinessCalendarWindow", window_id)
        logger.info(f"Calendar window {window_id} removed")


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def _end_clock(start: datetime, end: datetime) -> Optional[time]:
    """Wall-clock end of a slot, or None when the slot crosses into another day."""
    if end.date() == start.date():
        return end.time()
    if end.date() == start.date() + timedelta(days=1) and end.time() == time(0, 0):
        return time.max
    return None
