"""
Logging setup for Mini Engine applications.

``setup_logging`` installs one console handler on the root logger, plus a file
handler when ``ENABLE_FILE_LOGGING`` is set, and applies per-logger levels.
Framework modules log through ``get_logger(__name__)``:

- ``mini_engine.database``: one INFO line per executed statement
- ``mini_engine.server.dispatcher``: routing decisions at DEBUG
- ``mini_engine.server.middleware``: one line per request, slow requests at WARNING

Nothing is configured on import; ``create_app`` calls ``setup_logging`` with the
application settings.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

LOG_FILE_NAME = "mini_engine.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_FORMAT = "detailed"

LOG_FORMATS: Dict[str, str] = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s",
    "json": (
        '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
        '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
        '"message": "%(message)s"}'
    ),
}

# Per-logger levels
MODULE_LOG_LEVELS = {
    "mini_engine": "INFO",
    "mini_engine.database": "DEBUG",
    "mini_engine.server": "INFO",
    "mini_engine.server.dispatcher": "DEBUG",
    # Third-party libraries (reduce noise)
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "httpx": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
}

# Overrides applied on top of MODULE_LOG_LEVELS in production
PRODUCTION_LOG_LEVELS = {
    "mini_engine.database": "WARNING",
    "mini_engine.server.dispatcher": "INFO",
}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("true", "1", "yes")


def module_levels(production: bool = False) -> Dict[str, str]:
    """Logger name to level mapping for the given environment."""
    levels = dict(MODULE_LOG_LEVELS)
    if production:
        levels.update(PRODUCTION_LOG_LEVELS)
    return levels


def _file_handler(formatter: logging.Formatter) -> logging.Handler:
    log_dir = Path(os.getenv("LOG_FILE_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: Optional[bool] = None,
    *,
    production: bool = False,
) -> None:
    """
    Configure the root logger and the framework loggers.

    Args:
        log_level: Console level; ``MINI_ENGINE_LOG_LEVEL`` or INFO when omitted
        log_format: ``simple``, ``detailed`` or ``json``; ``LOG_FORMAT`` or detailed when omitted
        enable_file: Also write to ``$LOG_FILE_DIR/mini_engine.log``; ``ENABLE_FILE_LOGGING`` when omitted
        production: Apply the production logger levels
    """
    level = (log_level or os.getenv("MINI_ENGINE_LOG_LEVEL", "INFO")).upper()
    fmt = log_format or os.getenv("LOG_FORMAT", DEFAULT_FORMAT)
    if fmt not in LOG_FORMATS:
        fmt = DEFAULT_FORMAT
    file_logging = _env_flag("ENABLE_FILE_LOGGING") if enable_file is None else enable_file

    formatter = logging.Formatter(LOG_FORMATS[fmt], datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers filter
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_logging:
        root_logger.addHandler(_file_handler(formatter))

    for module_name, module_level in module_levels(production).items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(
        f"Logging configured: level={level}, format={fmt}, file_logging={file_logging}, production={production}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
