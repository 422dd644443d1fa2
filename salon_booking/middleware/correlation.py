"""Request correlation ID middleware for tracking requests across logs."""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from salon_booking.constants import Headers
from salon_booking.core.logger import correlation_id_ctx


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation ID to all requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and add correlation ID.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response with correlation ID header
        """
        request_id = request.headers.get(Headers.REQUEST_ID) or str(uuid.uuid4())
        token = correlation_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(token)

        response.headers[Headers.REQUEST_ID] = request_id
        return response


def get_correlation_id() -> str:
    """
    Get the current request's correlation ID.

    Returns:
        Correlation ID string, or empty string if not set
    """
    return correlation_id_ctx.get() or ""
