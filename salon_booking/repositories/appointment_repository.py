"""Appointment repository implementation."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import asyncpg

from salon_booking.core.exceptions import ConcurrentModificationError, SlotUnavailableError
from salon_booking.models.appointment import (
    Appointment,
    AppointmentEvent,
    AppointmentUpdate,
    StatusChange,
)
from salon_booking.models.database import Database
from salon_booking.repositories.appointment_event_repository import AppointmentEventRepository
from salon_booking.repositories.base import BaseRepository
from salon_booking.services.collaborators import AppointmentStore

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT a.*, s.name AS status_name
    FROM appointments a
    JOIN appointment_statuses s ON s.id = a.status_id
"""


class AppointmentRepository(BaseRepository[Appointment], AppointmentStore):
    """Repository for appointments backed by the staff/time-range exclusion constraint."""

    def __init__(self, database: Database):
        """
        Initialize appointment repository.

        Args:
            database: Database instance
        """
        super().__init__(database)

    def _row_to_appointment(self, row: Any) -> Appointment:
        """
        Convert database row to Appointment entity.

        Args:
            row: Database row

        Returns:
            Appointment entity
        """
        return Appointment(
            id=row["id"],
            start_time=row["start_time"],
            duration_minutes=row["duration_minutes"],
            creator_id=row["creator_id"],
            client_id=row["client_id"],
            staff_id=row.get("staff_id"),
            calendar_window_id=row.get("calendar_window_id"),
            status_id=row["status_id"],
            service_ids=list(row.get("service_ids") or []),
            notes=row.get("notes"),
            confirmed_at=row.get("confirmed_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            active=row.get("active", True),
            status_name=row.get("status_name"),
        )

    async def get_by_id(self, id: str) -> Optional[Appointment]:
        """
        Get appointment by ID.

        Returns:
            Appointment entity or None if not found
        """
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(f"{_SELECT} WHERE a.id = $1", id)
            if row is None:
                return None
            return self._row_to_appointment(row)

    async def get_all(self, limit: int = 100) -> List[Appointment]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(f"{_SELECT} ORDER BY a.start_time DESC LIMIT $1", limit)
            return [self._row_to_appointment(row) for row in rows]

    async def get_by_client(self, client_id: str, limit: int = 100) -> List[Appointment]:
        """
        Get appointments for a client, most recent first.

        Args:
            client_id: Client ID
            limit: Maximum number of appointments to return
        """
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                f"{_SELECT} WHERE a.client_id = $1 ORDER BY a.start_time DESC LIMIT $2",
                client_id,
                limit,
            )
            return [self._row_to_appointment(row) for row in rows]

    async def get_by_staff(self, staff_id: str, limit: int = 100) -> List[Appointment]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                f"{_SELECT} WHERE a.staff_id = $1 ORDER BY a.start_time DESC LIMIT $2",
                staff_id,
                limit,
            )
            return [self._row_to_appointment(row) for row in rows]

    async def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        staff_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Slot-holding appointments overlapping [start, end).

        Uses the same half-open comparison as the exclusion constraint.
        """
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                f"""
                {_SELECT}
                WHERE a.active
                  AND a.start_time < $2
                  AND a.end_time > $1
                  AND ($3::text IS NULL OR a.staff_id = $3)
                  AND ($4::text IS NULL OR a.id <> $4)
                ORDER BY a.start_time
                """,
                start,
                end,
                staff_id,
                exclude_id,
            )
            return [self._row_to_appointment(row) for row in rows]

    async def create(self, appointment: Appointment, event: AppointmentEvent) -> Appointment:
        """
        Insert the appointment and its BOOKED event atomically.

        Raises:
            SlotUnavailableError: If the exclusion constraint rejects the slot
        """
        async with self.db.get_connection() as conn:
            try:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        """
                        INSERT INTO appointments (
                            id, start_time, duration_minutes, end_time, creator_id, client_id,
                            staff_id, calendar_window_id, status_id, service_ids, notes,
                            confirmed_at, active, created_at, updated_at
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, TRUE, $13, $14)
                        RETURNING *
                        """,
                        appointment.id,
                        appointment.start_time,
                        appointment.duration_minutes,
                        appointment.end_time,
                        appointment.creator_id,
                        appointment.client_id,
                        appointment.staff_id,
                        appointment.calendar_window_id,
                        appointment.status_id,
                        appointment.service_ids,
                        appointment.notes,
                        appointment.confirmed_at,
                        appointment.created_at,
                        appointment.updated_at,
                    )
                    await AppointmentEventRepository.insert(conn, event)
            except asyncpg.exceptions.ExclusionViolationError as e:
                logger.warning(
                    f"Exclusion constraint rejected appointment {appointment.id} "
                    f"for staff {appointment.staff_id}: {e}"
                )
                raise SlotUnavailableError(
                    "Time slot unavailable: the staff member was booked concurrently"
                ) from e

        logger.info(f"Appointment {appointment.id} inserted")
        created = self._row_to_appointment(row)
        created.status_name = appointment.status_name
        return created

    async def apply_transition(self, change: StatusChange, event: AppointmentEvent) -> Appointment:
        """
        Compare-and-swap the status and write the event in one transaction.

        Raises:
            ConcurrentModificationError: If the status changed since it was read
        """
        async with self.db.get_connection() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    UPDATE appointments
                    SET status_id = $3,
                        active = $4,
                        updated_at = $5,
                        confirmed_at = COALESCE($6, confirmed_at),
                        notes = COALESCE($7, notes)
                    WHERE id = $1 AND status_id = $2
                    RETURNING *
                    """,
                    change.appointment_id,
                    change.expected_status_id,
                    change.new_status_id,
                    change.occupies_slot,
                    change.updated_at,
                    change.confirmed_at,
                    change.notes,
                )
                if row is None:
                    logger.warning(f"Status compare-and-swap lost for {change.appointment_id}")
                    raise ConcurrentModificationError(change.appointment_id)
                await AppointmentEventRepository.insert(conn, event)

        logger.info(f"Appointment {change.appointment_id} status updated to {event.to_status}")
        return self._row_to_appointment(row)

    async def update_schedule(self, update: AppointmentUpdate, event: AppointmentEvent) -> Appointment:
        """
        Rewrite time, staff and services while the status is unchanged.

        Raises:
            ConcurrentModificationError: If the status changed since it was read
            SlotUnavailableError: If the exclusion constraint rejects the new slot
        """
        async with self.db.get_connection() as conn:
            try:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        """
                        UPDATE appointments
                        SET start_time = $3,
                            duration_minutes = $4,
                            end_time = $5,
                            staff_id = $6,
                            calendar_window_id = $7,
                            service_ids = $8,
                            notes = COALESCE($9, notes),
                            updated_at = $10
                        WHERE id = $1 AND status_id = $2
                        RETURNING *
                        """,
                        update.appointment_id,
                        update.expected_status_id,
                        update.start_time,
                        update.duration_minutes,
                        update.start_time + timedelta(minutes=update.duration_minutes),
                        update.staff_id,
                        update.calendar_window_id,
                        list(update.service_ids),
                        update.notes,
                        update.updated_at,
                    )
                    if row is None:
                        logger.warning(f"Reschedule compare-and-swap lost for {update.appointment_id}")
                        raise ConcurrentModificationError(update.appointment_id)
                    await AppointmentEventRepository.insert(conn, event)
            except asyncpg.exceptions.ExclusionViolationError as e:
                logger.warning(
                    f"Exclusion constraint rejected reschedule of {update.appointment_id} "
                    f"for staff {update.staff_id}: {e}"
                )
                raise SlotUnavailableError(
                    "Time slot unavailable: the staff member was booked concurrently"
                ) from e

        logger.info(f"Appointment {update.appointment_id} rescheduled to {update.start_time.isoformat()}")
        return self._row_to_appointment(row)

    async def find_in_range(
        self,
        start: datetime,
        end: datetime,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[Appointment]:
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                f"""
                {_SELECT}
                WHERE a.start_time >= $1
                  AND a.start_time < $2
                  AND ($3::text IS NULL OR a.staff_id = $3)
                  AND ($4::text IS NULL OR a.client_id = $4)
                ORDER BY a.start_time
                LIMIT $5
                """,
                start,
                end,
                staff_id,
                client_id,
                limit,
            )
            return [self._row_to_appointment(row) for row in rows]

    async def count_by_status(
        self,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Per-status counts in one GROUP BY; statuses with no appointments are absent."""
        async with self.db.get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT s.name AS status_name, COUNT(*) AS total
                FROM appointments a
                JOIN appointment_statuses s ON s.id = a.status_id
                WHERE ($1::text IS NULL OR a.staff_id = $1)
                  AND ($2::text IS NULL OR a.client_id = $2)
                  AND ($3::timestamptz IS NULL OR a.start_time >= $3)
                  AND ($4::timestamptz IS NULL OR a.start_time < $4)
                GROUP BY s.name
                """,
                staff_id,
                client_id,
                start,
                end,
            )
            return {row["status_name"]: row["total"] for row in rows}
