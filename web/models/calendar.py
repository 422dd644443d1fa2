"""Business calendar models."""

from typing import Optional

from pydantic import BaseModel, Field


class CalendarWindowCreateRequest(BaseModel):
    """Calendar window creation model. Times are HH:MM (24h)."""

    weekday: str = Field(..., description="MONDAY..SUNDAY")
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["18:00"])
    holiday_id: Optional[int] = None


class CalendarWindowResponse(BaseModel):
    id: Optional[int] = None
    weekday: str
    start_time: str
    end_time: str
    holiday_id: Optional[int] = None
