"""Tests for logging configuration."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from plan_engine.config import get_config
from plan_engine.utils.logging_config import setup_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("plan_engine")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.mark.unit
class TestSetupLogging:
    def test_stderr_handler_only(self, restore_logger):
        logger = setup_logging("debug")
        assert logger.name == "plan_engine"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], RotatingFileHandler)

    def test_file_handler(self, restore_logger, tmp_path):
        log_dir = tmp_path / "logs"
        logger = setup_logging("INFO", log_dir=log_dir)

        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        file_handlers[0].flush()
        assert "session_start" in (log_dir / "plan_engine.log").read_text()

    def test_repeated_calls_do_not_duplicate(self, restore_logger):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_unknown_level_defaults_to_info(self, restore_logger):
        assert setup_logging("chatty").level == logging.INFO

    def test_level_defaults_to_config(self, restore_logger, monkeypatch):
        monkeypatch.setenv("PLAN_ENGINE_LOG_LEVEL", "warning")
        get_config.cache_clear()
        try:
            assert setup_logging().level == logging.WARNING
        finally:
            get_config.cache_clear()
