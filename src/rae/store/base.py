"""Key-value store protocol and the JSON-object cache built on top of it."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import orjson

from rae.utils.logging import get_logger


logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Durable string store used as the persistence substrate for caches."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""


class MemoryStore:
    """In-process store; the default in tests."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonCache:
    """A named cache persisted as a single JSON object under one store key.

    Corrupt or non-object payloads read as empty so a bad write never takes
    the dashboard down.
    """

    def __init__(self, store: KeyValueStore, name: str) -> None:
        self.store = store
        self.name = name

    def load(self) -> dict[str, Any]:
        raw = self.store.get(self.name)
        if not raw:
            return {}
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("cache.corrupt name=%s", self.name)
            return {}
        if not isinstance(data, dict):
            logger.warning("cache.unexpected_type name=%s type=%s", self.name, type(data).__name__)
            return {}
        return data

    def save(self, data: dict[str, Any]) -> None:
        self.store.set(self.name, orjson.dumps(data).decode("utf-8"))
