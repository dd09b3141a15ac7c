"""
Logging configuration for the attachment organizer.

Supports traditional text logging and structured JSON logging with a
correlation id, so every record emitted while applying or undoing one batch
can be grouped together.

Usage:
    from attachment_organizer.logging_config import configure_logging, setup_structured_logging

    # Traditional logging
    configure_logging(log_level="DEBUG")

    # Structured logging (one JSON object per line)
    setup_structured_logging()

Environment Variables:
    ORGANIZER_LOG_DIR - Write a log file into this directory
    ORGANIZER_LOG_LEVEL - Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .config import config

PACKAGE_LOGGER = "attachment_organizer"

# Correlation id of the apply/undo operation in progress
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
    "taskName",
}


@contextmanager
def correlation_scope(prefix: str) -> Iterator[str]:
    """Tag records logged inside the block with a fresh correlation id.

    The previous id is restored on exit.
    """
    correlation_id = f"{prefix}-{uuid.uuid4().hex[:12]}"
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter with correlation id support.

    Each record becomes one JSON object with timestamp, level, logger name,
    message, correlation id, and any extra attributes added to the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def _resolve_level(log_level: Optional[str]) -> int:
    level_name = (log_level or config.log_level or "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def setup_structured_logging(log_level: Optional[str] = None) -> logging.Logger:
    """Configure the package logger for JSON output on stderr.

    Args:
        log_level: Logging level name (defaults to ORGANIZER_LOG_LEVEL)

    Returns:
        The configured package logger
    """
    level = _resolve_level(log_level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)

    return logger


def configure_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    log_to_console: bool = True,
    log_filename: Optional[str] = None,
) -> logging.Logger:
    """
    Configure text logging for the organizer.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for a log file (defaults to ORGANIZER_LOG_DIR;
            no file is written when neither is set)
        log_to_console: Whether to log to stderr
        log_filename: Custom log filename (defaults to a timestamped name)

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    level = _resolve_level(log_level)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is None and config.log_dir:
        log_dir = Path(config.log_dir)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        if log_filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_filename = f"organizer_{timestamp}.log"

        log_path = log_dir / log_filename
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.debug(f"Logging to: {log_path}")

    return logger
