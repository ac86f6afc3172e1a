from __future__ import annotations

import logging
import sys
import threading
from typing import TextIO

"""Console logging for formula-backfill.

All output goes to stdout as "<LABEL> <message>" with one label per level
(INFO, WARN, ERROR, SUMMARY). The SUMMARY line is the machine-readable result
of a run and has its own level between INFO and WARNING.

Module loggers (logging.getLogger(__name__)) live under LOGGER_NAME and reach
the console handler through propagation. DEBUG lines emitted from lookup worker
threads carry the thread name so interleaved lookups can be told apart.

The per-row lookup error log is a separate file, see error_log.py.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "formula_backfill"
SUMMARY_LEVEL = 25

logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")


class LabeledFormatter(logging.Formatter):
    """Formats records as "<LABEL> <message>"."""

    LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        SUMMARY_LEVEL: "SUMMARY",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LABELS.get(record.levelno, record.levelname)
        message = record.getMessage()
        if record.levelno == logging.DEBUG and record.threadName != threading.main_thread().name:
            return f"{label} [{record.threadName}] {message}"
        return f"{label} {message}"


class _ConsoleHandler(logging.StreamHandler):
    """Marker type so setup/reset only touch the handler installed here."""


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, _ConsoleHandler)]


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Install the console handler on the application logger.

    Calling it again returns the same logger without adding a second handler.
    The stream defaults to sys.stdout as it is at the time of the first call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if _console_handlers(logger):
        return logger

    handler = _ConsoleHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(LabeledFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    # the root logger may carry handlers of an embedding application
    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    return setup_logging()


def set_debug(logger: logging.Logger) -> None:
    """Lower the logger and its handlers to DEBUG."""
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Remove the console handler so the next setup binds the current stdout."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in _console_handlers(logger):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
