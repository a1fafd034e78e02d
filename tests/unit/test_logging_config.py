"""
powermon Unit Tests - Logging Configuration

Unit tests for powermon/logging_config.py.

Run:
    pytest tests/unit/test_logging_config.py -v
"""

import logging
import stat
import sys
from logging.handlers import RotatingFileHandler

import pytest

from powermon.logging_config import get_logger, setup_logging


def _root():
    return logging.getLogger("powermon")


class TestSetupLogging:
    """Unit tests for setup_logging function."""

    def test_default_level(self):
        setup_logging()
        assert _root().level == logging.INFO

    def test_custom_level(self):
        setup_logging(log_level="DEBUG")
        assert _root().level == logging.DEBUG

    def test_lowercase_level(self):
        setup_logging(log_level="warning")
        assert _root().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="CHATTY")
        assert _root().level == logging.INFO

    def test_console_goes_to_stderr(self):
        setup_logging()
        handlers = _root().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_file_replaces_console(self, tmp_path):
        log_path = tmp_path / "powermon.log"
        setup_logging(log_file=log_path)

        handlers = _root().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RotatingFileHandler)
        assert handlers[0].baseFilename == str(log_path)

    def test_file_is_private(self, tmp_path):
        log_path = tmp_path / "powermon.log"
        setup_logging(log_file=log_path)
        assert stat.S_IMODE(log_path.stat().st_mode) == 0o600

    def test_creates_parent_directory(self, tmp_path):
        log_path = tmp_path / "state" / "nested" / "powermon.log"
        setup_logging(log_file=log_path)
        assert log_path.parent.exists()

    def test_messages_written_to_file(self, tmp_path):
        log_path = tmp_path / "powermon.log"
        setup_logging(log_level="INFO", log_file=log_path)

        get_logger("test_file").info("power state: AC_POWER")
        for handler in _root().handlers:
            handler.flush()

        assert "power state: AC_POWER" in log_path.read_text()

    def test_rerun_does_not_accumulate_handlers(self):
        setup_logging(log_level="INFO")
        setup_logging(log_level="DEBUG")
        assert len(_root().handlers) == 1

    def test_quiet_level_filters_info(self, tmp_path):
        log_path = tmp_path / "powermon.log"
        setup_logging(log_level="WARNING", log_file=log_path)

        logger = get_logger("test_quiet")
        logger.info("status update")
        logger.warning("failed to get battery state")
        for handler in _root().handlers:
            handler.flush()

        text = log_path.read_text()
        assert "status update" not in text
        assert "failed to get battery state" in text


class TestGetLogger:
    """Unit tests for get_logger function."""

    def test_prefixes_namespace(self):
        assert get_logger("event_loop").name == "powermon.event_loop"

    def test_keeps_existing_namespace(self):
        assert get_logger("powermon.session").name == "powermon.session"

    @pytest.mark.parametrize("name", ["a", "services.upower"])
    def test_is_child_of_root(self, name):
        assert get_logger(name).parent.name.startswith("powermon")
