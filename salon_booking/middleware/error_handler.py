"""Global error handling rendering RFC 7807 problem details."""

import traceback
from http import HTTPStatus
from typing import Callable, Dict, Mapping, Optional, cast

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from salon_booking.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    SalonBookingError,
    ValidationError,
)

PROBLEM_JSON = "application/problem+json"


class RoutingError(SalonBookingError):
    """Framework-level HTTP error such as an unknown route or method."""

    def __init__(self, status_code: int, message: str):
        phrase = HTTPStatus(status_code).phrase
        self.http_status = status_code
        self.title = phrase
        self.error_slug = phrase.lower().replace(" ", "-")
        super().__init__(message)


def render_error(
    error: SalonBookingError,
    request: Request,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """
    Render a domain error as ``application/problem+json``.

    The body carries type/title/status/detail/instance plus the error's
    details. Database errors keep their status but hide their message.
    """
    status_code = error.http_status
    content = {
        "type": error.error_type_uri,
        "title": error.title,
        "status": status_code,
        "detail": error.message,
        "instance": request.url.path,
    }

    if isinstance(error, DatabaseError):
        logger.error(f"Database error on {request.url.path}: {error.message}")
        content["detail"] = "The database is unavailable. Please try again later."
        content["recoverable"] = error.recoverable
    else:
        log = logger.error if status_code >= 500 else logger.warning
        log(f"{error.__class__.__name__} on {request.url.path}: {error.message}")
        if not isinstance(error, ValidationError):
            content["recoverable"] = error.recoverable
        content.update(error.details)

    return JSONResponse(
        status_code=status_code, content=content, headers=dict(headers or {}), media_type=PROBLEM_JSON
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware with consistent problem+json responses.

    Domain errors keep their message; anything unexpected becomes a generic 500.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return cast(Response, response)
        except SalonBookingError as e:
            return render_error(e, request)
        except Exception as e:
            return self._handle_unexpected_error(e, request)

    @staticmethod
    def _handle_unexpected_error(error: Exception, request: Request) -> JSONResponse:
        """Handle unexpected errors. Must not leak internal details."""
        logger.error(
            f"Unexpected error on {request.url.path}: {error!r}\n{traceback.format_exc()}"
        )

        content = {
            "type": "urn:salonbooking:error:internal-server",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred. Please try again later.",
            "instance": request.url.path,
        }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
            media_type=PROBLEM_JSON,
        )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Framework HTTP errors go through the same problem rendering as domain errors."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        error: SalonBookingError = AuthenticationError(detail)
    elif exc.status_code == status.HTTP_403_FORBIDDEN:
        error = AuthorizationError(detail)
    else:
        error = RoutingError(exc.status_code, detail)
    return render_error(error, request, headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Unparseable bodies, paths and query strings are booking validation errors (400).

    Each failing location is listed under ``errors``; the first one is
    reported as ``field``.
    """
    errors: Dict[str, str] = {}
    for item in exc.errors():
        location = ".".join(str(loc) for loc in item["loc"] if loc not in ("body", "query", "path"))
        errors[location or "body"] = item["msg"]

    first_field = next(iter(errors), None)
    error = ValidationError(
        f"Invalid value for {first_field}: {errors[first_field]}" if first_field else "Invalid request",
        field=first_field,
    )
    error.details["errors"] = errors
    return render_error(error, request)
