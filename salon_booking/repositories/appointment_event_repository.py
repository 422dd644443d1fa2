"""Appointment audit event repository."""

import logging
from typing import Any, List, Optional

import asyncpg

from salon_booking.models.appointment import AppointmentEvent
from salon_booking.models.database import Database
from salon_booking.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_INSERT_EVENT = """
    INSERT INTO appointment_events (
        appointment_id, event_type, from_status, to_status, actor_id,
        reason, cancelled_by, notes, notify_client, notification, created_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, COALESCE($11, NOW()))
    RETURNING id
"""


class AppointmentEventRepository(BaseRepository[AppointmentEvent]):
    """Read access to the audit trail plus the insert used inside transitions."""

    def __init__(self, database: Database):
        super().__init__(database)

    @staticmethod
    def _row_to_event(row: Any) -> AppointmentEvent:
        return AppointmentEvent(
            id=row["id"],
            appointment_id=row["appointment_id"],
            event_type=row["event_type"],
            from_status=row.get("from_status"),
            to_status=row["to_status"],
            actor_id=row["actor_id"],
            reason=row.get("reason"),
            cancelled_by=row.get("cancelled_by"),
            notes=row.get("notes"),
            notify_client=row.get("notify_client", True),
            notification=row.get("notification"),
            created_at=row.get("created_at"),
        )

    @staticmethod
    async def insert(conn: asyncpg.Connection, event: AppointmentEvent) -> int:
        """
        Insert an event on an existing connection.

        Called inside the caller's transaction so the event commits or rolls
        back with the status change it describes.
        """
        event_id = await conn.fetchval(
            _INSERT_EVENT,
            event.appointment_id,
            event.event_type,
            event.from_status,
            event.to_status,
            event.actor_id,
            event.reason,
            event.cancelled_by,
            event.notes,
            event.notify_client,
            event.notification,
            event.created_at,
        )
        event.id = event_id
        return event_id

    async def get_by_id(self, id: int) -> Optional[AppointmentEvent]:
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM appointment_events WHERE id = $1", id)
            return self._row_to_event(row) if row else None

    async def get_all(self, limit: int = 100) -> List[AppointmentEvent]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT * FROM appointment_events ORDER BY created_at DESC, id DESC LIMIT $1", limit
            )
            return [self._row_to_event(row) for row in rows]

    async def get_by_appointment(self, appointment_id: str) -> List[AppointmentEvent]:
        """
        Get the history of one appointment, oldest first.

        Args:
            appointment_id: Appointment ID

        Returns:
            List of events
        """
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                "SELECT * FROM appointment_events WHERE appointment_id = $1 ORDER BY created_at, id",
                appointment_id,
            )
            return [self._row_to_event(row) for row in rows]
