"""
API Middleware - Request Tracking, Cache Control

Middleware for the FastAPI application:
- Request ID tracking (for debugging)
- Cache-Control headers aligned with the server-side window cache TTL
"""

import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from omnilens.core import get_logger

logger = get_logger(__name__)


# ============================================================
# Request ID Middleware
# ============================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Add unique request ID to each request for tracing and debugging.

    Adds X-Request-ID header to both request and response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add request ID to request and response."""

        # Generate or use existing request ID
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "API request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "API response",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        return response


# ============================================================
# Cache Control Middleware
# ============================================================


class CacheControlMiddleware(BaseHTTPMiddleware):
    """
    Add Cache-Control headers for client-side caching.

    - /health: 1 minute cache
    - repository health and graph endpoints: the server cache TTL (results
      cannot change before the server entry expires)
    - /docs, /redoc, /openapi.json: 1 day cache (static docs)
    """

    def __init__(self, app: ASGIApp, max_age_seconds: int = 300):
        super().__init__(app)
        self.max_age_seconds = max_age_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add Cache-Control headers based on endpoint."""

        response = await call_next(request)

        # Only add cache headers for successful GET requests
        if request.method != "GET" or response.status_code >= 400:
            return response

        path = request.url.path

        if path == "/health":
            self._set_max_age(response, 60)
        elif path.startswith("/api/v1/repositories/") and path.count("/") >= 5:
            self._set_max_age(response, self.max_age_seconds)
        elif path in ["/docs", "/redoc", "/openapi.json"]:
            self._set_max_age(response, 86400)
        else:
            response.headers["Cache-Control"] = "no-cache, must-revalidate"

        return response

    def _set_max_age(self, response: Response, seconds: int) -> None:
        response.headers["Cache-Control"] = f"public, max-age={seconds}"
        response.headers["Expires"] = self._get_expires_header(seconds)

    def _get_expires_header(self, seconds: int) -> str:
        """Generate Expires header value."""
        expires_time = datetime.now(UTC) + timedelta(seconds=seconds)
        return expires_time.strftime("%a, %d %b %Y %H:%M:%S GMT")
