"""Tests for models/calendar and models/appointment entities."""

from datetime import datetime, time, timezone

import pytest

from salon_booking.core.enums import DayOfWeek
from salon_booking.core.exceptions import ValidationError
from salon_booking.models.appointment import Appointment
from salon_booking.models.calendar import BusinessCalendarWindow, format_clock, parse_clock


class TestParseClock:
    def test_valid(self):
        assert parse_clock("09:30") == time(9, 30)

    def test_time_passthrough_drops_seconds(self):
        assert parse_clock(time(9, 30, 15)) == time(9, 30)

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", "", None])
    def test_invalid(self, value):
        with pytest.raises(ValidationError, match="Invalid start_time format. Use HH:MM"):
            parse_clock(value, "start_time")

    def test_format(self):
        assert format_clock(time(7, 5)) == "07:05"


class TestBusinessCalendarWindow:
    def test_construct_and_serialize(self):
        window = BusinessCalendarWindow("monday", "09:00", "17:00", id=4)
        assert window.weekday is DayOfWeek.MONDAY
        assert window.duration_minutes == 480
        assert window.to_dict() == {
            "id": 4,
            "weekday": "MONDAY",
            "start_time": "09:00",
            "end_time": "17:00",
            "holiday_id": None,
        }

    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError, match="Start time must be before end time"):
            BusinessCalendarWindow("MONDAY", "17:00", "09:00")

    def test_equal_times_rejected(self):
        with pytest.raises(ValidationError):
            BusinessCalendarWindow("MONDAY", "09:00", "09:00")

    def test_unknown_weekday(self):
        with pytest.raises(ValidationError, match="Invalid weekday") as exc_info:
            BusinessCalendarWindow("FUNDAY", "09:00", "17:00")
        assert exc_info.value.field == "weekday"

    def test_overlap_is_half_open(self):
        morning = BusinessCalendarWindow("MONDAY", "09:00", "12:00")
        afternoon = BusinessCalendarWindow("MONDAY", "12:00", "17:00")
        lunch = BusinessCalendarWindow("MONDAY", "11:30", "13:00")
        assert not morning.overlaps(afternoon)
        assert morning.overlaps(lunch)
        assert lunch.overlaps(afternoon)

    def test_contains(self):
        window = BusinessCalendarWindow("MONDAY", "09:00", "17:00")
        assert window.contains(time(9, 0), time(17, 0))
        assert not window.contains(time(16, 30), time(17, 15))
        assert not window.contains(time(8, 45), time(9, 30))

    def test_same_scope(self):
        plain = BusinessCalendarWindow("MONDAY", "09:00", "17:00")
        holiday = BusinessCalendarWindow("MONDAY", "10:00", "12:00", holiday_id=1)
        assert not plain.same_scope(holiday)
        assert plain.same_scope(BusinessCalendarWindow("MONDAY", "18:00", "19:00"))


class TestAppointment:
    @pytest.fixture
    def appointment(self):
        return Appointment(
            id="a1",
            start_time=datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc),
            duration_minutes=45,
            creator_id="client-1",
            client_id="client-1",
            status_id=1,
            service_ids=["svc-cut"],
            staff_id="staff-1",
            status_name="PENDING",
        )

    def test_end_time(self, appointment):
        assert appointment.end_time == datetime(2025, 6, 2, 9, 45, tzinfo=timezone.utc)

    def test_overlaps_half_open(self, appointment):
        at = lambda h, m: datetime(2025, 6, 2, h, m, tzinfo=timezone.utc)  # noqa: E731
        assert appointment.overlaps(at(9, 30), at(10, 0))
        assert not appointment.overlaps(at(9, 45), at(10, 30))
        assert not appointment.overlaps(at(8, 0), at(9, 0))

    def test_involves(self, appointment):
        assert appointment.involves("client-1")
        assert appointment.involves("staff-1")
        assert not appointment.involves("someone-else")

    def test_to_dict(self, appointment):
        data = appointment.to_dict()
        assert data["status"] == "PENDING"
        assert data["end_time"] == "2025-06-02T09:45:00+00:00"
        assert data["service_ids"] == ["svc-cut"]
