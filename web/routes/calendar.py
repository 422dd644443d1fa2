"""Business calendar administration routes."""

from typing import List

from fastapi import APIRouter, Depends, Response

from salon_booking.services import BusinessCalendar
from web.dependencies import get_business_calendar, get_current_user_id, require_calendar_manager
from web.models.calendar import CalendarWindowCreateRequest, CalendarWindowResponse

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/windows", response_model=List[CalendarWindowResponse])
async def list_windows(
    user_id: str = Depends(get_current_user_id),
    calendar: BusinessCalendar = Depends(get_business_calendar),
):
    return [w.to_dict() for w in await calendar.list_windows()]


@router.post("/windows", response_model=CalendarWindowResponse, status_code=201)
async def add_window(
    window: CalendarWindowCreateRequest,
    user_id: str = Depends(require_calendar_manager),
    calendar: BusinessCalendar = Depends(get_business_calendar),
):
    """Add an operating window; overlapping windows in the same scope are rejected."""
    created = await calendar.add_window(
        window.weekday, window.start_time, window.end_time, holiday_id=window.holiday_id
    )
    return created.to_dict()


@router.delete("/windows/{window_id}", status_code=204)
async def remove_window(
    window_id: int,
    user_id: str = Depends(require_calendar_manager),
    calendar: BusinessCalendar = Depends(get_business_calendar),
):
    await calendar.remove_window(window_id)
    return Response(status_code=204)
