"""
Request Logging Middleware.

Wraps the catch-all route: every request produces one INFO line with method,
path, status and duration, and an ``X-Process-Time`` response header (in
milliseconds). Requests slower than ``slow_request_ms`` are repeated at
WARNING. Exceptions escaping the dispatcher are logged and re-raised for the
global exception handler.
"""

import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from mini_engine.core.logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_MS = 1000
PROCESS_TIME_HEADER = "X-Process-Time"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Time and log each request handled by the application."""

    def __init__(self, app: ASGIApp, slow_request_ms: float = SLOW_REQUEST_MS) -> None:
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request_line = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request_line}",
                exc_info=True,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": self._elapsed_ms(started),
                    "error": str(e),
                },
            )
            raise

        duration_ms = self._elapsed_ms(started)
        response.headers[PROCESS_TIME_HEADER] = f"{duration_ms:.2f}"
        logger.info(f"{request_line} -> {response.status_code} ({duration_ms:.2f}ms)")

        if duration_ms > self.slow_request_ms:
            logger.warning(
                f"Slow request: {request_line} took {duration_ms:.2f}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                    "status_code": response.status_code,
                },
            )
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000
