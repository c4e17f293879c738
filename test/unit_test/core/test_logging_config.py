"""
Unit tests for logging configuration.

Tests verify root handler setup, per-module levels, the production overrides
and the optional file handler.
"""

import logging

import pytest

from mini_engine.core.logging_config import (
    LOG_FORMATS,
    MODULE_LOG_LEVELS,
    PRODUCTION_LOG_LEVELS,
    get_logger,
    module_levels,
    setup_logging,
)


@pytest.fixture
def restore_root_logger(monkeypatch: pytest.MonkeyPatch):
    """Put the root logger back the way the test runner configured it."""
    for name in ("ENABLE_FILE_LOGGING", "LOG_FILE_DIR", "LOG_FORMAT", "MINI_ENGINE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    levels = {name: logging.getLogger(name).level for name in MODULE_LOG_LEVELS}
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, module_level in levels.items():
        logging.getLogger(name).setLevel(module_level)


class TestSetupLogging:
    """Test setup_logging."""

    def test_installs_single_console_handler(self, restore_root_logger):
        setup_logging("warning")
        setup_logging("warning")

        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].level == logging.WARNING

    def test_level_from_environment(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("MINI_ENGINE_LOG_LEVEL", "error")

        setup_logging()

        assert restore_root_logger.handlers[0].level == logging.ERROR

    def test_applies_module_levels(self, restore_root_logger):
        setup_logging("INFO")

        for module_name, module_level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(module_level)

    def test_production_quiets_statement_logging(self, restore_root_logger):
        setup_logging("INFO", production=True)

        assert logging.getLogger("mini_engine.database").level == logging.WARNING
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    @pytest.mark.parametrize("log_format", ["simple", "json", "detailed"])
    def test_formats(self, restore_root_logger, log_format):
        setup_logging("INFO", log_format=log_format)

        assert restore_root_logger.handlers[0].formatter._fmt == LOG_FORMATS[log_format]

    def test_unknown_format_falls_back_to_detailed(self, restore_root_logger):
        setup_logging("INFO", log_format="xml")

        assert restore_root_logger.handlers[0].formatter._fmt == LOG_FORMATS["detailed"]

    def test_file_handler_from_environment(self, restore_root_logger, monkeypatch, tmp_path):
        monkeypatch.setenv("ENABLE_FILE_LOGGING", "true")
        monkeypatch.setenv("LOG_FILE_DIR", str(tmp_path / "logs"))

        setup_logging("INFO")

        file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert (tmp_path / "logs" / "mini_engine.log").exists()

    def test_explicit_flag_overrides_environment(self, restore_root_logger, monkeypatch, tmp_path):
        monkeypatch.setenv("ENABLE_FILE_LOGGING", "true")
        monkeypatch.setenv("LOG_FILE_DIR", str(tmp_path / "logs"))

        setup_logging("INFO", enable_file=False)

        assert not any(isinstance(h, logging.FileHandler) for h in restore_root_logger.handlers)

    def test_file_logging_off_by_default(self, restore_root_logger):
        setup_logging("INFO")

        assert not any(isinstance(h, logging.FileHandler) for h in restore_root_logger.handlers)


class TestModuleLevels:
    def test_development_levels(self):
        assert module_levels() == MODULE_LOG_LEVELS

    def test_production_overrides(self):
        levels = module_levels(production=True)

        for name, level in PRODUCTION_LOG_LEVELS.items():
            assert levels[name] == level
        assert levels["httpx"] == MODULE_LOG_LEVELS["httpx"]


class TestGetLogger:
    def test_returns_named_logger(self):
        logger = get_logger("mini_engine.database.connection")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "mini_engine.database.connection"
