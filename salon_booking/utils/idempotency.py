"""Idempotency keys for booking retries."""

import asyncio
import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger

from salon_booking.constants import Idempotency
from salon_booking.core.clock import Clock, utc_now
from salon_booking.core.exceptions import ConflictError


class IdempotencyBackend(ABC):
    """Abstract base class for idempotency backends."""

    @abstractmethod
    async def get_record(self, key: str) -> Optional["IdempotencyRecord"]:
        """
        Get the stored record for an idempotency key.

        Returns:
            Record if found and not expired, None otherwise
        """

    @abstractmethod
    async def set(
        self, key: str, result: Any, ttl_seconds: int, fingerprint: Optional[str] = None
    ) -> None:
        """Store result for idempotency key."""

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """

    async def get(self, key: str) -> Optional[Any]:
        """Cached result for the key, or None."""
        record = await self.get_record(key)
        return record.result if record else None


@dataclass
class IdempotencyRecord:
    """Record of an idempotent operation."""

    key: str
    result: Any
    created_at: datetime
    expires_at: datetime
    fingerprint: Optional[str] = None


class InMemoryIdempotencyBackend(IdempotencyBackend):
    """In-memory idempotency backend (single worker only)."""

    def __init__(self, clock: Clock = utc_now):
        self._store: Dict[str, IdempotencyRecord] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._store)

    async def get_record(self, key: str) -> Optional[IdempotencyRecord]:
        async with self._lock:
            record = self._store.get(key)
            if record:
                if self._clock() < record.expires_at:
                    logger.debug(f"Idempotency hit for key: {key[:16]}...")
                    return record
                del self._store[key]
            return None

    async def set(
        self, key: str, result: Any, ttl_seconds: int, fingerprint: Optional[str] = None
    ) -> None:
        async with self._lock:
            now = self._clock()
            self._store[key] = IdempotencyRecord(
                key=key,
                result=result,
                created_at=now,
                expires_at=now + timedelta(seconds=ttl_seconds),
                fingerprint=fingerprint,
            )
            logger.debug(f"Idempotency stored for key: {key[:16]}...")

    async def cleanup_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            expired_keys = [k for k, v in self._store.items() if v.expires_at <= now]
            for key in expired_keys:
                del self._store[key]

            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired idempotency records")

            return len(expired_keys)


class IdempotencyKeyReusedError(ConflictError):
    """Idempotency key replayed with a different request body."""

    def __init__(self, message: str = "Idempotency key was already used for a different request"):
        super().__init__(message)


class IdempotencyStore:
    """
    Replays the stored result of an operation for repeated keys.

    Concurrent calls with the same key are serialized so the operation runs once.
    Failed operations are not stored and may be retried with the same key.
    A repeated key whose request fingerprint differs from the stored one is
    rejected instead of replayed.
    """

    def __init__(
        self,
        ttl_seconds: int = Idempotency.TTL_SECONDS,
        backend: Optional[IdempotencyBackend] = None,
    ):
        self._ttl = ttl_seconds
        self._backend = backend or InMemoryIdempotencyBackend()
        # key -> (lock, number of callers holding or waiting on it)
        self._key_locks: Dict[str, Tuple[asyncio.Lock, int]] = {}
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info(f"IdempotencyStore initialized (TTL: {ttl_seconds}s)")

    @staticmethod
    def _generate_key(operation: str, params: Dict[str, Any]) -> str:
        """Generate idempotency key from operation and parameters."""
        param_str = json.dumps(params, sort_keys=True, default=str)
        content = f"{operation}:{param_str}"
        return hashlib.sha256(content.encode()).hexdigest()

    @staticmethod
    def fingerprint(payload: Dict[str, Any]) -> str:
        """Stable hash of a normalised request body."""
        return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()

    async def get(self, key: str) -> Optional[Any]:
        return await self._backend.get(key)

    async def set(self, key: str, result: Any, fingerprint: Optional[str] = None) -> None:
        await self._backend.set(key, result, self._ttl, fingerprint=fingerprint)

    async def check_and_set(
        self,
        operation: str,
        params: Dict[str, Any],
        execute_fn: Callable[[], Awaitable[Any]],
        fingerprint: Optional[str] = None,
    ) -> Tuple[Any, bool]:
        """
        Return the stored result for (operation, params) or execute and store.

        Args:
            operation: Operation identifier
            params: Parameters that identify the request
            execute_fn: Async function to execute if not cached
            fingerprint: Hash of the request body; a stored record with a
                different fingerprint is not replayed

        Returns:
            Tuple of (result, was_cached)

        Raises:
            IdempotencyKeyReusedError: Same key, different request
        """
        key = self._generate_key(operation, params)
        lock = self._acquire_key_lock(key)
        try:
            async with lock:
                record = await self._backend.get_record(key)
                if record is not None:
                    if fingerprint is not None and record.fingerprint != fingerprint:
                        logger.warning(f"Idempotency key reused with a different request: {key[:16]}...")
                        raise IdempotencyKeyReusedError()
                    return record.result, True

                result = await execute_fn()
                await self.set(key, result, fingerprint=fingerprint)
                return result, False
        finally:
            self._release_key_lock(key)

    def _acquire_key_lock(self, key: str) -> asyncio.Lock:
        lock, users = self._key_locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._key_locks[key] = (lock, users + 1)
        return lock

    def _release_key_lock(self, key: str) -> None:
        lock, users = self._key_locks[key]
        if users <= 1:
            del self._key_locks[key]
        else:
            self._key_locks[key] = (lock, users - 1)

    async def cleanup_expired(self) -> int:
        """Drop expired results."""
        return await self._backend.cleanup_expired()

    def start_cleanup_scheduler(
        self, interval_seconds: float = Idempotency.CLEANUP_INTERVAL_SECONDS
    ) -> None:
        """Start the background task that purges expired records."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval_seconds))
        logger.info(f"Idempotency cleanup scheduled every {interval_seconds}s")

    async def stop_cleanup_scheduler(self) -> None:
        """Cancel the background cleanup task, if running."""
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        """Background loop for removing expired records."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.cleanup_expired()
            except Exception as e:
                logger.error(f"Error in idempotency cleanup loop: {e}")
