"""
Exception hierarchy for Mini Engine.

Every error raised by the framework derives from ``MiniEngineError`` so that
applications can catch framework failures with a single clause, while the
dispatcher can still tell control signals (``NoView``, ``NotFound``) apart
from genuine failures.
"""

from __future__ import annotations

from typing import Optional


class MiniEngineError(Exception):
    """Base class for all framework errors."""


class ConfigurationError(MiniEngineError):
    """A required setting is missing or has an unsupported value."""


class DatabaseError(MiniEngineError):
    """A database statement failed.

    The original driver exception is kept on ``cause`` and chained as
    ``__cause__``.
    """

    def __init__(self, message: str, *, sql: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.sql = sql
        self.cause = cause


class DuplicateKeyError(DatabaseError):
    """A unique constraint was violated."""


class QueryError(MiniEngineError):
    """The query builder was used in an unsupported way."""


class ViewNotFoundError(MiniEngineError):
    """A template file could not be found."""


class HttpRequestError(MiniEngineError):
    """An outbound HTTP request returned a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP request failed: {status_code} : {body}")
        self.status_code = status_code
        self.body = body


class ControllerSignal(MiniEngineError):
    """Base class for exceptions used as control flow inside request handling."""


class NoView(ControllerSignal):
    """Output was already produced; skip rendering the default template."""


class NotFound(ControllerSignal):
    """No controller or action matched the request."""
