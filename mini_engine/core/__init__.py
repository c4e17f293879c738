"""
Core building blocks shared by every Mini Engine subpackage.

- config: environment-bound ``Settings``.
- logging_config: centralized logging setup.
- errors: the framework exception hierarchy.
"""

from .config import Settings, get_settings
from .errors import (
    ConfigurationError,
    ControllerSignal,
    DatabaseError,
    DuplicateKeyError,
    HttpRequestError,
    MiniEngineError,
    NotFound,
    NoView,
    QueryError,
    ViewNotFoundError,
)
from .logging_config import get_logger, setup_logging

__all__ = [
    "ConfigurationError",
    "ControllerSignal",
    "DatabaseError",
    "DuplicateKeyError",
    "HttpRequestError",
    "MiniEngineError",
    "NoView",
    "NotFound",
    "QueryError",
    "Settings",
    "ViewNotFoundError",
    "get_logger",
    "get_settings",
    "setup_logging",
]
