"""Read-only lookups into client, staff, service and capability tables."""

import logging
from typing import Any, Dict, List, Optional

from salon_booking.core.enums import Capability
from salon_booking.models.database import Database
from salon_booking.services.collaborators import (
    CapabilityChecker,
    ClientDirectory,
    OfferingLookup,
    StaffDirectory,
)

logger = logging.getLogger(__name__)


class DirectoryRepository(OfferingLookup, ClientDirectory, StaffDirectory, CapabilityChecker):
    """
    Postgres implementation of the collaborator lookups.

    These tables are owned by other modules (identity, catalog); this repository
    only reads them.
    """

    def __init__(self, database: Database):
        self.db = database

    async def find_offering_duration(self, service_id: str) -> Optional[int]:
        async with self.db.get_connection() as conn:
            return await conn.fetchval(
                "SELECT duration_minutes FROM services WHERE id = $1", service_id
            )

    async def find_offering_durations(self, service_ids: List[str]) -> Dict[str, int]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT id, duration_minutes FROM services WHERE id = ANY($1::text[])",
                list(set(service_ids)),
            )
            return {row["id"]: row["duration_minutes"] for row in rows}

    async def find_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM clients WHERE id = $1", client_id)
            return dict(row) if row else None

    async def find_staff(self, staff_id: str) -> Optional[Dict[str, Any]]:
        """Active staff member or None."""
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM staff_members WHERE id = $1 AND active", staff_id
            )
            return dict(row) if row else None

    async def has_capability(self, user_id: str, capability: Capability) -> bool:
        async with self.db.get_connection() as conn:
            found = await conn.fetchval(
                "SELECT 1 FROM user_capabilities WHERE user_id = $1 AND capability = $2",
                user_id,
                Capability(capability).value,
            )
            return found is not None
