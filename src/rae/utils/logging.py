"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Reverse lookups put coordinates in query params; keep per-request lines out of INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "psycopg")


def configure_logging(level: str = "INFO", noisy: Iterable[str] = NOISY_LOGGERS) -> None:
    """Configure root logger once."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for name in noisy:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance, namespaced under 'rae' when no name is given."""
    return logging.getLogger(name or "rae")
