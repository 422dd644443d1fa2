"""Health check routes."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Response
from loguru import logger

from salon_booking.models.db_factory import DatabaseFactory

router = APIRouter(tags=["health"])


def get_version() -> str:
    from salon_booking import __version__

    return __version__


@router.get("/health")
async def health_check(response: Response) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring and container orchestration.

    Returns 503 when the database is unreachable.
    """
    try:
        db = await DatabaseFactory.ensure_connected()
        db_healthy = await db.health_check()
    except Exception as e:
        logger.error(f"Health check could not reach database: {e}")
        db_healthy = False

    if not db_healthy:
        response.status_code = 503

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": get_version(),
        "components": {"database": {"status": "healthy" if db_healthy else "unhealthy"}},
    }
