"""Utility helpers."""

from salon_booking.utils.idempotency import (
    IdempotencyBackend,
    IdempotencyKeyReusedError,
    IdempotencyStore,
    InMemoryIdempotencyBackend,
)

__all__ = [
    "IdempotencyBackend",
    "IdempotencyKeyReusedError",
    "IdempotencyStore",
    "InMemoryIdempotencyBackend",
]
