"""PostgreSQL connection pool and schema bootstrap for salon booking."""

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import asyncpg

from salon_booking.constants import Database as DbConstants
from salon_booking.core.enums import STATUS_LABELS
from salon_booking.core.exceptions import (
    DatabaseNotConnectedError,
    DatabasePoolTimeoutError,
)

if TYPE_CHECKING:
    from salon_booking.core.settings import BookingSettings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class DatabaseState:
    """Database connection state constants."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def require_connection(func: F) -> F:
    """
    Decorator to ensure database connection exists before method execution.

    Raises:
        DatabaseNotConnectedError: If database connection is not established
    """

    @wraps(func)
    async def wrapper(self: "Database", *args: Any, **kwargs: Any) -> Any:
        if self.pool is None:
            raise DatabaseNotConnectedError()
        return await func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


# Baseline schema. Alembic's 001 revision carries the same DDL.
SCHEMA_STATEMENTS = (
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    """
    CREATE TABLE IF NOT EXISTS appointment_statuses (
        id SERIAL PRIMARY KEY,
        name TEXT UNIQUE NOT NULL,
        label TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS holidays (
        id BIGSERIAL PRIMARY KEY,
        holiday_date DATE UNIQUE NOT NULL,
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS calendar_windows (
        id BIGSERIAL PRIMARY KEY,
        weekday TEXT NOT NULL CHECK (weekday IN (
            'MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY'
        )),
        start_time TIME NOT NULL,
        end_time TIME NOT NULL,
        holiday_id BIGINT REFERENCES holidays(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        CHECK (start_time < end_time)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS staff_members (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS services (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_capabilities (
        user_id TEXT NOT NULL,
        capability TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        PRIMARY KEY (user_id, capability)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        start_time TIMESTAMPTZ NOT NULL,
        duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
        end_time TIMESTAMPTZ NOT NULL,
        creator_id TEXT NOT NULL,
        client_id TEXT NOT NULL,
        staff_id TEXT,
        calendar_window_id BIGINT REFERENCES calendar_windows(id) ON DELETE SET NULL,
        status_id INTEGER NOT NULL REFERENCES appointment_statuses(id),
        service_ids TEXT[] NOT NULL,
        notes TEXT,
        confirmed_at TIMESTAMPTZ,
        active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        CHECK (end_time > start_time),
        CHECK (cardinality(service_ids) > 0),
        CONSTRAINT appointments_staff_no_overlap EXCLUDE USING gist (
            staff_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        ) WHERE (staff_id IS NOT NULL AND active)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS appointment_events (
        id BIGSERIAL PRIMARY KEY,
        appointment_id TEXT NOT NULL REFERENCES appointments(id) ON DELETE CASCADE,
        event_type TEXT NOT NULL,
        from_status TEXT,
        to_status TEXT NOT NULL,
        actor_id TEXT NOT NULL,
        reason TEXT,
        cancelled_by TEXT,
        notes TEXT,
        notify_client BOOLEAN NOT NULL DEFAULT TRUE,
        notification TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_appointments_client ON appointments(client_id)",
    "CREATE INDEX IF NOT EXISTS idx_appointments_staff_start ON appointments(staff_id, start_time)",
    "CREATE INDEX IF NOT EXISTS idx_calendar_windows_weekday ON calendar_windows(weekday)",
    "CREATE INDEX IF NOT EXISTS idx_appointment_events_appt ON appointment_events(appointment_id)",
)


class Database:
    """PostgreSQL database manager with connection pooling."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        connection_timeout: float = DbConstants.CONNECTION_TIMEOUT_SECONDS,
    ):
        """
        Initialize database connection pool.

        Args:
            database_url: PostgreSQL connection URL
            pool_size: Maximum number of concurrent connections
            connection_timeout: Seconds to wait for a pooled connection
        """
        self.database_url = database_url or DbConstants.DEFAULT_URL
        self.pool: Optional[asyncpg.Pool] = None
        self.pool_size = pool_size or DbConstants.POOL_SIZE_MIN
        self.connection_timeout = connection_timeout
        self._pool_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: "BookingSettings") -> "Database":
        """Pool configured from the DATABASE_URL / DB_* settings."""
        return cls(
            database_url=settings.database_url,
            pool_size=settings.db_pool_size,
            connection_timeout=settings.db_connection_timeout,
        )

    @staticmethod
    def _parse_command_tag(command_tag: str) -> int:
        """
        Parse PostgreSQL command tag to extract affected row count.

        Examples: 'UPDATE 5', 'DELETE 3', 'INSERT 0 1'
        """
        try:
            parts = command_tag.split()
            if len(parts) >= 2:
                return int(parts[-1])
            return 0
        except (ValueError, IndexError):
            logger.warning(f"Failed to parse command tag: {command_tag}")
            return 0

    @property
    def state(self) -> str:
        """Current connection state."""
        if self.pool is None:
            return DatabaseState.DISCONNECTED
        return DatabaseState.CONNECTED

    async def connect(self) -> None:
        """Establish database connection pool and create tables."""
        async with self._pool_lock:
            try:
                min_pool = max(2, (self.pool_size + 1) // 2)
                self.pool = await asyncpg.create_pool(
                    self.database_url,
                    min_size=min(min_pool, self.pool_size),
                    max_size=self.pool_size,
                    timeout=self.connection_timeout,
                    command_timeout=DbConstants.COMMAND_TIMEOUT_SECONDS,
                )

                await self._create_tables()

                host = self.database_url.split("@")[-1] if "@" in self.database_url else "localhost"
                logger.info(f"Database connected with pool size {self.pool_size}: {host}")
            except Exception:
                if self.pool:
                    await self.pool.close()
                    self.pool = None
                raise

    async def close(self) -> None:
        """Close database connection pool."""
        async with self._pool_lock:
            if self.pool:
                await self.pool.close()
                self.pool = None
            logger.info("Database connection pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def get_connection(self, timeout: Optional[float] = None) -> AsyncIterator[asyncpg.Connection]:
        """
        Get a connection from the pool with timeout.

        Args:
            timeout: Maximum time to wait for a connection

        Yields:
            Database connection from pool

        Raises:
            DatabaseNotConnectedError: If connect() has not been called
            DatabasePoolTimeoutError: If connection cannot be acquired within timeout
        """
        if self.pool is None:
            raise DatabaseNotConnectedError()
        wait = timeout if timeout is not None else self.connection_timeout
        try:
            async with self.pool.acquire(timeout=wait) as conn:
                yield conn
        except asyncio.TimeoutError:
            logger.error(
                f"Database connection pool exhausted (timeout: {wait}s, pool_size: {self.pool_size})"
            )
            raise DatabasePoolTimeoutError(timeout=wait, pool_size=self.pool_size)

    async def health_check(self) -> bool:
        """
        Perform a health check on the database connection.

        Returns:
            True if database is healthy
        """
        try:
            async with self.get_connection(timeout=5.0) as conn:
                result = await conn.fetchval("SELECT 1")
                return result is not None
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @require_connection
    async def _create_tables(self) -> None:
        """
        Create tables if they don't exist and seed the status catalog.

        Schema changes after the baseline are managed with Alembic.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                for statement in SCHEMA_STATEMENTS:
                    await conn.execute(statement)
                await conn.executemany(
                    """
                    INSERT INTO appointment_statuses (name, label) VALUES ($1, $2)
                    ON CONFLICT (name) DO NOTHING
                    """,
                    [(status.value, label) for status, label in STATUS_LABELS.items()],
                )
        logger.info("Database schema verified")
