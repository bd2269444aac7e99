# portaria/utils/logger.py
"""
Centralised logging configuration for the entire application.
Logs to console and to a rotating file in LOG_DIR.

configure_logging() is called once by the application startup event; modules
only ask for named loggers and never touch handlers themselves.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from portaria.config import settings

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party clients that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "qdrant_client", "openai", "google")

_handlers: list[logging.Handler] = []


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """Attach console + rotating file handlers to the root logger. Idempotent."""
    if _handlers:
        return

    level = (level or settings.LOG_LEVEL).upper()
    log_dir = log_dir or settings.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    # Console handler
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)

    # Rotating file handler — keeps last 10 × 5MB log files
    file_handler = RotatingFileHandler(
        filename=os.path.join(log_dir, "portaria.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in (console, file_handler):
        root.addHandler(handler)
        _handlers.append(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def shutdown_logging() -> None:
    """Detach and close the handlers installed by configure_logging()."""
    root = logging.getLogger()
    while _handlers:
        handler = _handlers.pop()
        root.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    return logging.getLogger(name)
