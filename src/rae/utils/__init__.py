"""Utility helpers."""

from rae.utils.logging import configure_logging, get_logger
from rae.utils.text import normalize_location, parse_lat_lon
from rae.utils.time import format_display, mean_timestamp, parse_timestamp

__all__ = [
    "configure_logging",
    "get_logger",
    "normalize_location",
    "parse_lat_lon",
    "format_display",
    "mean_timestamp",
    "parse_timestamp",
]
