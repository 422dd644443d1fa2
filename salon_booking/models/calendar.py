"""Business calendar entities."""

import re
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Union

from salon_booking.core.enums import DayOfWeek
from salon_booking.core.exceptions import ValidationError

_CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_clock(value: Union[str, time], field: str = "time") -> time:
    """
    Parse an ``HH:MM`` wall-clock string.

    Raises:
        ValidationError: If the value is not a 24h HH:MM time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(value, str) or not _CLOCK_PATTERN.match(value):
        raise ValidationError(f"Invalid {field} format. Use HH:MM", field=field)
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def minutes_of(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


class BusinessCalendarWindow:
    """Operating-hours interval [start_time, end_time) for a weekday or holiday."""

    def __init__(
        self,
        weekday: Union[DayOfWeek, str],
        start_time: Union[str, time],
        end_time: Union[str, time],
        holiday_id: Optional[int] = None,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        try:
            self.weekday = DayOfWeek(weekday.upper() if isinstance(weekday, str) else weekday)
        except ValueError:
            raise ValidationError(
                f"Invalid weekday '{weekday}'. Must be one of: {', '.join(DayOfWeek.values())}",
                field="weekday",
            )
        self.start_time = parse_clock(start_time, "start_time")
        self.end_time = parse_clock(end_time, "end_time")
        if self.start_time >= self.end_time:
            raise ValidationError("Start time must be before end time", field="start_time")
        self.holiday_id = holiday_id
        self.id = id
        self.created_at = created_at

    @property
    def duration_minutes(self) -> int:
        return minutes_of(self.end_time) - minutes_of(self.start_time)

    def overlaps(self, other: "BusinessCalendarWindow") -> bool:
        """Half-open interval overlap on the wall clock."""
        return self.start_time < other.end_time and other.start_time < self.end_time

    def contains(self, start: time, end: time) -> bool:
        """Whether [start, end) lies entirely within this window."""
        return self.start_time <= start and end <= self.end_time and start < end

    def same_scope(self, other: "BusinessCalendarWindow") -> bool:
        """Windows compete only within one weekday and holiday scope."""
        return self.weekday == other.weekday and self.holiday_id == other.holiday_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "weekday": self.weekday.value,
            "start_time": format_clock(self.start_time),
            "end_time": format_clock(self.end_time),
            "holiday_id": self.holiday_id,
        }

    def __repr__(self) -> str:
        scope = f", holiday={self.holiday_id}" if self.holiday_id is not None else ""
        return (
            f"BusinessCalendarWindow({self.weekday.value} "
            f"{format_clock(self.start_time)}-{format_clock(self.end_time)}{scope})"
        )


class Holiday:
    """Dated override of the weekly calendar."""

    def __init__(self, id: int, holiday_date: date, name: str):
        self.id = id
        self.holiday_date = holiday_date
        self.name = name

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "holiday_date": self.holiday_date.isoformat(), "name": self.name}
