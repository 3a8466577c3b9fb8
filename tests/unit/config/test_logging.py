"""
Unit tests for logging setup.

Tests cover:
- Logger naming under the chainsmith hierarchy
- Handler installation and replacement
- Silent NullHandler until setup_logging() runs
- File logging
- Colored formatter leaving records untouched
"""

import logging

import pytest

from chainsmith.config.logging import (
    ROOT_LOGGER_NAME,
    ColoredFormatter,
    get_logger,
    install_null_handler,
    setup_logging,
)
from chainsmith.config.settings import Settings


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def restore_logger():
    """Undo setup_logging() so other tests can still capture chainsmith logs."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestGetLogger:
    """Tests for get_logger()."""

    def test_package_module_name_kept(self):
        assert get_logger("chainsmith.chains.llm").name == "chainsmith.chains.llm"

    def test_foreign_name_nested(self):
        assert get_logger("myapp").name == "chainsmith.myapp"


class TestNullHandler:
    """Tests for the handler installed at import."""

    def test_installed_once(self, restore_logger):
        for handler in list(restore_logger.handlers):
            restore_logger.removeHandler(handler)

        install_null_handler()
        install_null_handler()

        assert [type(h) for h in restore_logger.handlers] == [logging.NullHandler]

    def test_replaced_by_setup(self, restore_logger):
        install_null_handler()
        setup_logging(Settings(_env_file=None, log_level="INFO"))
        assert not any(isinstance(h, logging.NullHandler) for h in restore_logger.handlers)


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_console_handler(self, restore_logger):
        logger = setup_logging(Settings(_env_file=None, log_level="WARNING"))
        assert logger is restore_logger
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ColoredFormatter)
        assert logger.propagate is False

    def test_repeated_setup_replaces_handlers(self, restore_logger):
        setup_logging(Settings(_env_file=None))
        setup_logging(Settings(_env_file=None))
        assert len(restore_logger.handlers) == 1

    def test_file_handler(self, restore_logger, tmp_path):
        log_file = tmp_path / "logs" / "chainsmith.log"
        setup_logging(Settings(_env_file=None, log_file=log_file))

        get_logger("chainsmith.test").info("hello file")
        for handler in restore_logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello file" in log_file.read_text()


class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def test_color_not_leaked_into_record(self):
        formatter = ColoredFormatter(fmt="%(levelname)s %(message)s")
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)

        formatted = formatter.format(record)

        assert "\033[31m" in formatted
        assert record.levelname == "ERROR"
