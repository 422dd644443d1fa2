"""Business calendar window repository."""

import logging
from datetime import date
from typing import Any, List, Optional

from salon_booking.core.enums import DayOfWeek
from salon_booking.models.calendar import BusinessCalendarWindow
from salon_booking.models.database import Database
from salon_booking.repositories.base import BaseRepository
from salon_booking.services.collaborators import CalendarWindowCatalog

logger = logging.getLogger(__name__)


class CalendarWindowRepository(BaseRepository[BusinessCalendarWindow], CalendarWindowCatalog):
    """Repository for operating-hours windows and holiday lookups."""

    def __init__(self, database: Database):
        super().__init__(database)

    @staticmethod
    def _row_to_window(row: Any) -> BusinessCalendarWindow:
        return BusinessCalendarWindow(
            weekday=row["weekday"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            holiday_id=row.get("holiday_id"),
            id=row["id"],
            created_at=row.get("created_at"),
        )

    async def get_by_id(self, id: int) -> Optional[BusinessCalendarWindow]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM calendar_windows WHERE id = $1", id)
            return self._row_to_window(row) if row else None

    async def get_all(self, limit: int = 100) -> List[BusinessCalendarWindow]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM calendar_windows ORDER BY id LIMIT $1", limit)
            return [self._row_to_window(row) for row in rows]

    async def find_all(self) -> List[BusinessCalendarWindow]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM calendar_windows ORDER BY id")
            return [self._row_to_window(row) for row in rows]

    async def find_windows_for_weekday(self, weekday: DayOfWeek) -> List[BusinessCalendarWindow]:
        """
        Get the regular (non-holiday) windows of a weekday.

        Args:
            weekday: Day of week

        Returns:
            Windows ordered by start time
        """
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM calendar_windows
                WHERE weekday = $1 AND holiday_id IS NULL
                ORDER BY start_time
                """,
                DayOfWeek(weekday).value,
            )
            return [self._row_to_window(row) for row in rows]

    async def find_windows_for_holiday(self, holiday_id: int) -> List[BusinessCalendarWindow]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT * FROM calendar_windows WHERE holiday_id = $1 ORDER BY start_time",
                holiday_id,
            )
            return [self._row_to_window(row) for row in rows]

    async def find_holiday_ids_for_date(self, day: date) -> List[int]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch("SELECT id FROM holidays WHERE holiday_date = $1", day)
            return [row["id"] for row in rows]

    async def create(self, window: BusinessCalendarWindow) -> BusinessCalendarWindow:
        """
        Insert a window.

        Returns:
            The stored window with its ID
        """
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO calendar_windows (weekday, start_time, end_time, holiday_id)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                """,
                window.weekday.value,
                window.start_time,
                window.end_time,
                window.holiday_id,
            )
            logger.info(f"Calendar window {row['id']} created")
            return self._row_to_window(row)

    async def delete(self, id: int) -> bool:
        async with self.db.get_connection() as conn:
            result = await conn.execute("DELETE FROM calendar_windows WHERE id = $1", id)
            return Database._parse_command_tag(result) > 0
