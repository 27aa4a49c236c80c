"""Timestamp parsing and display helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

DISPLAY_FORMAT = "%b %d, %Y %H:%M"
MISSING = "--"

# Formats seen in reporting payloads besides ISO-8601.
_FALLBACK_FORMATS = (
    DISPLAY_FORMAT,
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def parse_timestamp(value: object) -> Optional[datetime]:
    """Parse a timestamp into an aware UTC datetime, or None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = _parse_text(text)
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_text(text: str) -> Optional[datetime]:
    normalized = text.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def mean_timestamp(values: Iterable[object]) -> Optional[datetime]:
    """Mean of all parseable timestamps; unparseable values are skipped."""
    stamps = [dt.timestamp() for dt in (parse_timestamp(v) for v in values) if dt is not None]
    if not stamps:
        return None
    return datetime.fromtimestamp(sum(stamps) / len(stamps), tz=timezone.utc)


def format_display(value: Optional[datetime]) -> str:
    """Format for the dashboard, '--' when absent."""
    if value is None:
        return MISSING
    return value.strftime(DISPLAY_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
