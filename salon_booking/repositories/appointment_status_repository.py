"""Appointment status catalog repository."""

import logging
from typing import Any, List, Optional

from salon_booking.models.appointment import AppointmentStatus
from salon_booking.models.database import Database
from salon_booking.repositories.base import BaseRepository
from salon_booking.services.collaborators import StatusCatalog

logger = logging.getLogger(__name__)


class AppointmentStatusRepository(BaseRepository[AppointmentStatus], StatusCatalog):
    """Keyed lookups into the seeded status catalog."""

    def __init__(self, database: Database):
        super().__init__(database)

    @staticmethod
    def _row_to_status(row: Any) -> AppointmentStatus:
        return AppointmentStatus(id=row["id"], name=row["name"], label=row.get("label") or "")

    async def get_by_id(self, id: int) -> Optional[AppointmentStatus]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM appointment_statuses WHERE id = $1", id)
            return self._row_to_status(row) if row else None

    async def find_by_name(self, name: str) -> Optional[AppointmentStatus]:
        """
        Get a status by its catalog name.

        Args:
            name: Status name, e.g. ``PENDING``

        Returns:
            Status or None if the catalog has no such entry
        """
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM appointment_statuses WHERE name = $1", name)
            if row is None:
                logger.warning(f"Status '{name}' missing from catalog")
                return None
            return self._row_to_status(row)

    async def find_all(self) -> List[AppointmentStatus]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM appointment_statuses ORDER BY id")
            return [self._row_to_status(row) for row in rows]

    async def get_all(self, limit: int = 100) -> List[AppointmentStatus]:
        return (await self.find_all())[:limit]
