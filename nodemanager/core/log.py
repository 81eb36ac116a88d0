"""
Logging setup.

Every module logs through `logging.getLogger(__name__)`. This module wires
the `nodemanager` logger once at startup:

- api.log    all records, rotated daily
- error.log  ERROR and above, rotated daily
- console    outside production

Each record carries the correlation id of the request being handled.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from nodemanager.config import Settings

ROOT_LOGGER = "nodemanager"
LOG_FORMAT = "%(asctime)s %(levelname)s: %(correlation_id)s [%(name)s] %(message)s"
RETAINED_DAYS = 7

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class CorrelationIdFilter(logging.Filter):
    """Attach the current request's correlation id to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = request_id_var.get()
        return True


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        path,
        when="midnight",
        backupCount=RETAINED_DAYS,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    return handler


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configure the package logger from settings.

    Safe to call more than once: previously installed handlers are
    closed and replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = [
        _file_handler(log_dir / "api.log", logging.DEBUG),
        _file_handler(log_dir / "error.log", logging.ERROR),
    ]
    if not settings.is_production:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    correlation = CorrelationIdFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(correlation)
        logger.addHandler(handler)

    logger.setLevel(settings.log_level.upper())
    logger.propagate = False
    return logger
