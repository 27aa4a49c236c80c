"""Location identity keys used to address the enrichment and deadline caches.

The same physical defect may arrive with a grid id in one response, only a
server row id in another, and only raw coordinates in a third. Every item is
therefore addressed by an ordered list of keys, most specific first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, MutableMapping, Optional, TypeVar, Union

from rae.models import DefectItem
from rae.utils.text import normalize_location


V = TypeVar("V")


@dataclass(frozen=True)
class GridKey:
    grid_id: str

    @property
    def key(self) -> str:
        return f"grid:{self.grid_id}"


@dataclass(frozen=True)
class DbKey:
    db_id: int

    @property
    def key(self) -> str:
        return f"db:{self.db_id}"


@dataclass(frozen=True)
class LocationKey:
    location: str

    @property
    def key(self) -> str:
        return f"loc:{self.location}"


@dataclass(frozen=True)
class RoadKey:
    road_name: str

    @property
    def key(self) -> str:
        return f"road:{self.road_name}"


IdentityKey = Union[GridKey, DbKey, LocationKey, RoadKey]


def identity_keys(item: DefectItem) -> List[IdentityKey]:
    """Candidate keys for an item: grid id, then server id, then normalized location."""
    keys: List[IdentityKey] = []
    if item.grid_id:
        keys.append(GridKey(item.grid_id))
    if item.db_id is not None:
        keys.append(DbKey(item.db_id))
    location = normalize_location(item.location)
    if location:
        keys.append(LocationKey(location))
    return keys


def member_keys(items: Iterable[DefectItem]) -> List[IdentityKey]:
    """Identity keys across several items, de-duplicated, order preserved."""
    seen: set[IdentityKey] = set()
    keys: List[IdentityKey] = []
    for item in items:
        for key in identity_keys(item):
            if key not in seen:
                seen.add(key)
                keys.append(key)
    return keys


def lookup_first(mapping: Mapping[str, V], keys: Iterable[IdentityKey]) -> Optional[V]:
    """Return the value stored under the first key that hits."""
    for key in keys:
        value = mapping.get(key.key)
        if value is not None:
            return value
    return None


def write_all(mapping: MutableMapping[str, V], keys: Iterable[IdentityKey], value: V) -> None:
    """Store value under every key so less specific lookups still succeed later."""
    for key in keys:
        mapping[key.key] = value
