"""FastAPI application for the salon booking backend."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException

from salon_booking import __version__
from salon_booking.core.settings import get_settings
from salon_booking.middleware import CorrelationMiddleware, ErrorHandlerMiddleware
from salon_booking.middleware.error_handler import (
    http_exception_handler,
    request_validation_handler,
)
from salon_booking.models.db_factory import DatabaseFactory
from web.api_versioning import setup_versioned_routes
from web.dependencies import get_idempotency_store
from web.routes import health_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the database and start idempotency cleanup; undo both on shutdown."""
    logger.info("FastAPI application starting up...")
    try:
        await DatabaseFactory.ensure_connected()
        logger.info("Database connection established via DatabaseFactory")
    except Exception as e:
        logger.error(f"Failed to connect database during startup: {e}")
        raise

    idempotency = get_idempotency_store()
    idempotency.start_cleanup_scheduler()

    yield

    logger.info("FastAPI application shutting down...")
    await idempotency.stop_cleanup_scheduler()
    try:
        await asyncio.wait_for(DatabaseFactory.close_instance(), timeout=10)
        logger.info("DatabaseFactory instance closed successfully")
    except asyncio.TimeoutError:
        logger.error("DatabaseFactory close timed out after 10s")
    except Exception as e:
        logger.error(f"Error closing DatabaseFactory: {e}")


def create_app(env_override: Optional[str] = None, use_lifespan: bool = True) -> FastAPI:
    """
    Factory function to create FastAPI application instance.

    Args:
        env_override: Override environment name (docs are served outside production)
        use_lifespan: Connect the database on startup; tests disable it

    Returns:
        Configured FastAPI application instance
    """
    env = env_override if env_override is not None else get_settings().env
    _is_dev = env in ("development", "testing")

    app = FastAPI(
        title="Salon Booking API",
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs" if _is_dev else None,
        redoc_url="/redoc" if _is_dev else None,
        openapi_url="/openapi.json" if _is_dev else None,
        description=(
            "Appointment booking, lifecycle and business-calendar API. "
            "Callers are identified by the X-User-Id header set by the auth gateway."
        ),
        license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
        openapi_tags=[
            {"name": "appointments", "description": "Booking and appointment lifecycle"},
            {"name": "calendar", "description": "Business calendar administration"},
            {"name": "health", "description": "Health checks"},
        ],
    )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Added last runs first: correlation ID is set before errors are logged
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(CorrelationMiddleware)

    app.include_router(health_router)
    setup_versioned_routes(app)

    return app
