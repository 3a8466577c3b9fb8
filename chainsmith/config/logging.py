"""
Logging configuration and setup.

Provides console and file output for the ``chainsmith`` logger hierarchy.
Library modules only ever call get_logger(); handlers are attached by the
application through setup_logging().
"""

import logging
import sys
from pathlib import Path

from chainsmith.config.settings import Settings

ROOT_LOGGER_NAME = "chainsmith"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with color, leaving the record untouched for other handlers."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _configure(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def install_null_handler() -> None:
    """Keep the library silent until the application calls setup_logging()."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configure logging based on settings.

    Args:
        settings: Application settings containing log configuration

    Returns:
        The configured ``chainsmith`` root logger
    """
    level = getattr(logging, settings.log_level)
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    # Replaces the NullHandler installed at import, and any earlier setup
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(
        _configure(logging.StreamHandler(sys.stdout), level, ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT))
    )

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(
            _configure(logging.FileHandler(log_path), level, logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        )

    # Records stay in the chainsmith hierarchy
    root_logger.propagate = False

    root_logger.info(f"Logging initialized - Level: {settings.log_level}")
    if settings.log_file:
        root_logger.info(f"Logging to file: {settings.log_file}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger nested under the ``chainsmith`` hierarchy
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
