"""
Default Error Controller.

Every failure inside request handling ends up in the ``error`` controller's
``error_action`` with the exception as its only parameter. The default
implementation:

- ``NotFound`` in production: HTTP 404 with a short page.
- Anything else: logged with its full traceback, then an empty HTTP 500 in
  production or an inline trace page otherwise.
"""

from __future__ import annotations

import traceback
from typing import List, NoReturn

from markupsafe import escape

from mini_engine.core.errors import NotFound, NoView
from mini_engine.core.logging_config import get_logger

from .controller import Controller

logger = get_logger(__name__)


def _stack_frames(error: BaseException) -> List[str]:
    frames = traceback.extract_tb(error.__traceback__)
    return [f"{frame.filename}:{frame.lineno}" for frame in reversed(frames)]


def default_error_handler(controller: Controller, error: BaseException) -> NoReturn:
    """
    Write the error page for ``error`` and stop view rendering.

    Args:
        controller: The error controller handling the request
        error: The exception raised while handling the request

    Raises:
        NoView: Always, the error page is the complete response.
    """
    production = controller.settings.is_production
    response = controller.response
    request = controller.request

    if isinstance(error, NotFound):
        response.status_code = 404
        if production:
            response.write("<h1>404 Not Found</h1>")
            raise NoView()
    else:
        error_id = id(error)
        logger.error(
            f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "error_id": error_id,
                "method": request.method,
                "path": request.url.path,
                "error_type": type(error).__name__,
            },
        )
        response.status_code = 500
        if production:
            raise NoView()

    lines = [f"<p>Error: {escape(str(error))}</p>", "<ul>"]
    lines.extend(f"<li>{escape(frame)}</li>" for frame in _stack_frames(error))
    lines.append("</ul>")
    response.write("\n".join(lines))
    raise NoView()


class ErrorController(Controller):
    """Framework default for the ``error`` route."""

    def error_action(self, error: BaseException) -> None:
        default_error_handler(self, error)
