"""
Last-resort exception handler.

Controller failures never get here: the dispatcher hands them to the error
controller. This handler covers what fails around the dispatcher (middleware,
encoding the session cookie, reading the request body). The client gets an
empty 500 with an ``X-Error-Id`` header matching the log line.
"""

from fastapi import FastAPI, Request
from starlette.responses import Response

from mini_engine.core.logging_config import get_logger

logger = get_logger(__name__)

ERROR_ID_HEADER = "X-Error-Id"


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Log ``exc`` with its request context and answer with an empty 500."""
    error_id = id(exc)
    client = request.client.host if request.client else "unknown"

    logger.error(
        f"Unhandled exception [{error_id}] outside dispatch in {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "client": client,
            "error_type": type(exc).__name__,
        },
    )
    return Response(status_code=500, headers={ERROR_ID_HEADER: str(error_id)})


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the last-resort handler on ``app``."""
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
