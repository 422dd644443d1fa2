"""Tests for utils/idempotency module."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from fakes import MutableClock
from salon_booking.utils.idempotency import (
    IdempotencyRecord,
    IdempotencyKeyReusedError,
    IdempotencyStore,
    InMemoryIdempotencyBackend,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestIdempotencyRecord:
    def test_record_creation(self):
        expires = NOW + timedelta(hours=1)
        record = IdempotencyRecord(key="test_key", result="test_result", created_at=NOW, expires_at=expires)
        assert record.key == "test_key"
        assert record.result == "test_result"
        assert record.expires_at == expires


class TestInMemoryBackend:
    @pytest.mark.asyncio
    async def test_get_set(self):
        backend = InMemoryIdempotencyBackend(clock=MutableClock(NOW))
        await backend.set("k", {"id": "a1"}, ttl_seconds=60)
        assert await backend.get("k") == {"id": "a1"}
        assert await backend.get("other") is None

    @pytest.mark.asyncio
    async def test_expired_entry_dropped(self):
        clock = MutableClock(NOW)
        backend = InMemoryIdempotencyBackend(clock=clock)
        await backend.set("k", "v", ttl_seconds=60)
        clock.advance(seconds=61)
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        clock = MutableClock(NOW)
        backend = InMemoryIdempotencyBackend(clock=clock)
        await backend.set("short", "v", ttl_seconds=10)
        await backend.set("long", "v", ttl_seconds=1000)
        clock.advance(seconds=11)
        assert await backend.cleanup_expired() == 1
        assert await backend.get("long") == "v"


class TestIdempotencyStore:
    def test_default_ttl(self):
        assert IdempotencyStore()._ttl == 86400

    def test_generate_key(self):
        key1 = IdempotencyStore._generate_key("book", {"creator_id": "u1", "key": "k"})
        key2 = IdempotencyStore._generate_key("book", {"key": "k", "creator_id": "u1"})
        assert key1 == key2
        assert len(key1) == 64  # SHA256 hex digest

    def test_generate_key_differs(self):
        assert IdempotencyStore._generate_key("book", {"key": "a"}) != IdempotencyStore._generate_key(
            "book", {"key": "b"}
        )

    @pytest.mark.asyncio
    async def test_check_and_set_executes_once(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        execute_fn = AsyncMock(return_value="result")

        first = await store.check_and_set("op", {"k": 1}, execute_fn)
        second = await store.check_and_set("op", {"k": 1}, execute_fn)

        assert first == ("result", False)
        assert second == ("result", True)
        execute_fn.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failures_are_not_stored(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await store.check_and_set("op", {"k": 1}, failing)

        result, cached = await store.check_and_set("op", {"k": 1}, AsyncMock(return_value="ok"))
        assert (result, cached) == ("ok", False)

    @pytest.mark.asyncio
    async def test_concurrent_calls_serialize(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "done"

        results = await asyncio.gather(*(store.check_and_set("op", {"k": 1}, slow) for _ in range(5)))

        assert calls == 1
        assert sorted(cached for _, cached in results) == [False, True, True, True, True]

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        clock = MutableClock(NOW)
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=clock))
        await store.check_and_set("op", {"k": 1}, AsyncMock(return_value="ok"))
        clock.advance(seconds=120)

        assert await store.cleanup_expired() == 1

    @pytest.mark.asyncio
    async def test_key_locks_released_after_each_call(self):
        backend = InMemoryIdempotencyBackend(clock=MutableClock(NOW))
        store = IdempotencyStore(ttl_seconds=60, backend=backend)
        for i in range(1000):
            await store.check_and_set("op", {"k": i}, AsyncMock(return_value=i))

        assert store._key_locks == {}
        assert len(backend) == 1000

    @pytest.mark.asyncio
    async def test_key_lock_kept_while_callers_wait(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        release = asyncio.Event()

        async def blocked():
            await release.wait()
            return "done"

        tasks = [asyncio.create_task(store.check_and_set("op", {"k": 1}, blocked)) for _ in range(3)]
        await asyncio.sleep(0)
        assert len(store._key_locks) == 1
        assert next(iter(store._key_locks.values()))[1] == 3

        release.set()
        await asyncio.gather(*tasks)
        assert store._key_locks == {}

    @pytest.mark.asyncio
    async def test_failure_releases_key_lock(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        with pytest.raises(RuntimeError):
            await store.check_and_set("op", {"k": 1}, AsyncMock(side_effect=RuntimeError("boom")))
        assert store._key_locks == {}


class TestFingerprint:
    def test_fingerprint_ignores_key_order(self):
        assert IdempotencyStore.fingerprint({"a": 1, "b": 2}) == IdempotencyStore.fingerprint({"b": 2, "a": 1})

    @pytest.mark.asyncio
    async def test_same_body_replays(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        body = IdempotencyStore.fingerprint({"staff_id": "staff-1"})
        await store.check_and_set("op", {"k": 1}, AsyncMock(return_value="first"), fingerprint=body)
        result = await store.check_and_set("op", {"k": 1}, AsyncMock(return_value="second"), fingerprint=body)
        assert result == ("first", True)

    @pytest.mark.asyncio
    async def test_different_body_rejected(self):
        store = IdempotencyStore(ttl_seconds=60, backend=InMemoryIdempotencyBackend(clock=MutableClock(NOW)))
        await store.check_and_set(
            "op", {"k": 1}, AsyncMock(return_value="first"),
            fingerprint=IdempotencyStore.fingerprint({"staff_id": "staff-1"}),
        )
        second = AsyncMock(return_value="second")
        with pytest.raises(IdempotencyKeyReusedError):
            await store.check_and_set(
                "op", {"k": 1}, second, fingerprint=IdempotencyStore.fingerprint({"staff_id": "staff-2"})
            )
        second.assert_not_awaited()
        assert store._key_locks == {}

    def test_reuse_error_is_conflict(self):
        assert IdempotencyKeyReusedError().http_status == 409


class TestCleanupScheduler:
    @pytest.mark.asyncio
    async def test_scheduler_purges_expired_records(self):
        clock = MutableClock(NOW)
        backend = InMemoryIdempotencyBackend(clock=clock)
        store = IdempotencyStore(ttl_seconds=1, backend=backend)
        await store.check_and_set("op", {"k": 1}, AsyncMock(return_value="ok"))
        clock.advance(seconds=5)

        store.start_cleanup_scheduler(interval_seconds=0.01)
        try:
            for _ in range(50):
                if len(backend) == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await store.stop_cleanup_scheduler()

        assert len(backend) == 0
        assert store._cleanup_task is None

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        store = IdempotencyStore(ttl_seconds=60)
        await store.stop_cleanup_scheduler()
