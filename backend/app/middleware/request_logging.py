"""
Request/response logging middleware for tracking API interactions.
"""
import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable

from app.core.logging_config import request_id_context

logger = logging.getLogger(__name__)


def _caller_identifier(request: Request) -> str:
    """Coarse caller label for logs; never includes a full credential."""
    if request.headers.get("X-Admin-Token"):
        return "admin"
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return f"token:{auth_header[7:17]}..."
    return "anonymous"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log incoming requests and outgoing responses.

    Sets the request ID used to correlate every log line of a request,
    echoes it in the ``X-Request-ID`` response header and reports the
    processing time in ``X-Process-Time``. Requests slower than
    ``slow_request_threshold`` seconds are logged at WARNING.
    """

    def __init__(self, app, slow_request_threshold: float = 1.0):
        """
        Initialize request logging middleware.

        Args:
            app: FastAPI application
            slow_request_threshold: Seconds after which a request is logged as slow
        """
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or extract request ID for correlation
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_context.set(request_id)

        start_time = time.perf_counter()
        method = request.method
        path = str(request.url.path)
        client_host = request.client.host if request.client else "unknown"
        caller = _caller_identifier(request)

        logger.info(
            "Incoming request",
            extra={
                "method": method,
                "path": path,
                "client_host": client_host,
                "user_identifier": caller,
            },
        )

        try:
            response = await call_next(request)

            process_time = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(round(process_time, 4))

            extra_fields = {
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(process_time * 1000, 2),
                "client_host": client_host,
                "user_identifier": caller,
            }
            if response.status_code >= 500:
                logger.error("Server error response", extra=extra_fields)
            elif response.status_code >= 400:
                logger.warning("Client error response", extra=extra_fields)
            elif process_time > self.slow_request_threshold:
                logger.warning("Slow request", extra=extra_fields)
            else:
                logger.info("Request completed", extra=extra_fields)
            return response
        finally:
            request_id_context.reset(token)
