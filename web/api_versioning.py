"""API versioning for the salon booking web application."""

from fastapi import APIRouter, FastAPI

API_V1_PREFIX = "/api/v1"


def setup_versioned_routes(app: FastAPI) -> None:
    """
    Register the versioned API routers under /api/v1.

    Health checks stay unversioned so orchestrators have a stable URL.

    Args:
        app: FastAPI application instance
    """
    from web.routes import appointments_router, calendar_router

    api_v1_router = APIRouter(prefix=API_V1_PREFIX)
    api_v1_router.include_router(appointments_router)
    api_v1_router.include_router(calendar_router)

    app.include_router(api_v1_router)
