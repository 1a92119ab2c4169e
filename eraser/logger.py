"""
Logging helpers for eraser.

All modules log through the standard library; this module only decides
handlers, formats and the default level.

Module loggers carry no handlers or levels of their own. Output goes through
the package logger ("eraser"), which gets a stdout handler on first use unless
the root logger has been configured with `setup_root_logger`. In that case the
package logger only sets the level and records propagate to the root handlers.
"""

import logging
import os
import sys
import threading
from typing import Optional
from pathlib import Path

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

PACKAGE_LOGGER = "eraser"

_lock = threading.Lock()


def default_level() -> str:
    """Log level taken from ERASER_LOG_LEVEL, INFO when unset."""
    return os.environ.get("ERASER_LOG_LEVEL", "INFO").upper()


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _ensure_package_logger() -> None:
    """Give the package logger a console handler unless the root logger already prints."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers or logging.getLogger().handlers:
        return

    package_logger.setLevel(getattr(logging, default_level()))
    package_logger.addHandler(_console_handler())


def get_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Get a logger for a module or class.

    Args:
        name: Logger name (usually __name__)
        level: Optional level for this logger only; inherited when None
        log_file: Optional file to mirror this logger's output to

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    with _lock:
        _ensure_package_logger()

        if level:
            logger.setLevel(getattr(logging, level.upper()))

        if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            logger.addHandler(_file_handler(log_file))

    return logger


def setup_root_logger(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure the root logger for command-line runs.

    Existing root handlers are replaced so repeated calls do not duplicate
    output. The package logger drops its own handler and takes `level`, so
    every eraser record is printed once, by the root handlers.
    """
    with _lock:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, level.upper()))

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        root_logger.addHandler(_console_handler())
        if log_file:
            root_logger.addHandler(_file_handler(log_file))

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)
        package_logger.setLevel(getattr(logging, level.upper()))


class LoggerMixin:
    """Gives a class a `logger` named after it plus short logging helpers."""

    @property
    def logger(self) -> logging.Logger:
        return get_logger(f"eraser.{self.__class__.__name__}")

    def log_debug(self, message: str, *args, **kwargs) -> None:
        self.logger.debug(message, *args, **kwargs)

    def log_info(self, message: str, *args, **kwargs) -> None:
        self.logger.info(message, *args, **kwargs)

    def log_warning(self, message: str, *args, **kwargs) -> None:
        self.logger.warning(message, *args, **kwargs)

    def log_error(self, message: str, *args, **kwargs) -> None:
        self.logger.error(message, *args, **kwargs)
