"""Persistence substrate for the engine caches."""

from __future__ import annotations

from typing import Optional

from rae.config import Settings
from rae.store.base import JsonCache, KeyValueStore, MemoryStore
from rae.store.json_file import JsonFileStore


def build_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """Pick the store implementation named by CACHE_BACKEND."""
    settings = settings or Settings()
    if settings.cache_backend == "memory":
        return MemoryStore()
    if settings.cache_backend == "postgres":
        from rae.store.postgres import PostgresStore

        return PostgresStore(settings)
    return JsonFileStore(settings.cache_path)


__all__ = ["JsonCache", "JsonFileStore", "KeyValueStore", "MemoryStore", "build_store"]
