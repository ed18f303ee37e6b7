from __future__ import annotations

import logging
import sys
from typing import Any

"""Logging initialization with labeled prefixes.

Every line is written to stdout as ``LABEL message`` where LABEL is one of
INFO|WARN|ERROR|SUMMARY (plus DEBUG in --debug mode). Modules log through
``logging.getLogger(__name__)``, or through ``workshop_logger()`` while syncing
one workshop; since they live under the ``sheet_sync`` package their
records reach the handler installed here.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "WorkshopLogger",
    "enable_debug",
    "get_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
    "workshop_logger",
]

LOGGER_NAME = "sheet_sync"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter producing ``LABEL message`` lines."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the application logger (idempotent).

    Returns:
        The ``sheet_sync`` logger with a single stdout handler.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None


def enable_debug() -> logging.Logger:
    """Lower the application logger and its handlers to DEBUG (--debug)."""
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
    return logger


class WorkshopLogger(logging.LoggerAdapter):
    """Prefixes every message with ``workshop=<id>``.

    >>> import logging
    >>> WorkshopLogger(logging.getLogger("x"), {"workshop": "W1"}).process("row=2 ok", {})
    ('workshop=W1 row=2 ok', {})
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"workshop={self.extra['workshop']} {msg}", kwargs


def workshop_logger(name: str, workshop_id: str) -> WorkshopLogger:
    return WorkshopLogger(logging.getLogger(name), {"workshop": workshop_id})
