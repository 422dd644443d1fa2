"""Process-wide database pool built from application settings."""

import asyncio
from typing import Optional

from loguru import logger

from salon_booking.core.exceptions import ConfigurationError
from salon_booking.core.settings import BookingSettings, get_settings
from salon_booking.models.database import Database, DatabaseState


class DatabaseFactory:
    """
    Holds the one ``Database`` the API process uses.

    The pool is built from ``BookingSettings`` (the settings singleton unless
    ``configure`` was called) and connected on first use. The lifespan
    handler closes it on shutdown.
    """

    _instance: Optional[Database] = None
    _settings: Optional[BookingSettings] = None
    _lock: Optional[asyncio.Lock] = None

    @classmethod
    def configure(cls, settings: BookingSettings) -> None:
        """
        Use explicit settings for the next pool.

        Raises:
            ConfigurationError: If a pool is already connected
        """
        if cls._instance is not None and cls._instance.state == DatabaseState.CONNECTED:
            raise ConfigurationError("Database is already connected; close it before reconfiguring")
        cls._settings = settings
        cls._instance = None

    @classmethod
    def get_instance(cls) -> Database:
        """The shared Database, created (not connected) on first access."""
        if cls._instance is None:
            cls._instance = Database.from_settings(cls._settings or get_settings())
            logger.info(f"Database pool configured (size {cls._instance.pool_size})")
        return cls._instance

    @classmethod
    async def ensure_connected(cls) -> Database:
        """Shared Database with an open pool."""
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        async with cls._lock:
            db = cls.get_instance()
            if db.state != DatabaseState.CONNECTED:
                await db.connect()
            return db

    @classmethod
    async def close_instance(cls) -> None:
        """Close and forget the shared pool."""
        db, cls._instance = cls._instance, None
        if db is not None:
            await db.close()
            logger.info("Database pool closed")

    @classmethod
    def reset(cls) -> None:
        """Forget the pool and explicit settings without closing (tests)."""
        cls._instance = None
        cls._settings = None
        cls._lock = None
