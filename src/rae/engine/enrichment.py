"""Road name and district enrichment via a cached reverse lookup."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Iterable, Optional, Protocol

import httpx

from rae.engine.identity import identity_keys, lookup_first, write_all
from rae.models import UNKNOWN_DISTRICT, UNKNOWN_ROAD, DefectItem
from rae.store.base import JsonCache, KeyValueStore
from rae.utils.logging import get_logger


logger = get_logger(__name__)

ROAD_CACHE = "rae.road_names"
DISTRICT_CACHE = "rae.districts"

ROAD_FIELDS = ("road", "pedestrian", "footway", "neighbourhood")
DISTRICT_FIELDS = (
    "district",
    "state_district",
    "county",
    "city_district",
    "suburb",
    "region",
    "state",
)


class Geocoder(Protocol):
    def reverse(self, lat: float, lon: float) -> dict[str, Any]:
        """Return a Nominatim-style place description."""


@dataclass(frozen=True)
class Enrichment:
    road_name: str
    district: str
    resolved: bool = True


UNRESOLVED = Enrichment(road_name=UNKNOWN_ROAD, district=UNKNOWN_DISTRICT, resolved=False)


def _first_text(values: Iterable[Any]) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_road_name(payload: dict[str, Any]) -> str:
    address = payload.get("address") or {}
    candidates = [address.get(name) for name in ROAD_FIELDS]
    candidates.append(payload.get("display_name"))
    return _first_text(candidates) or UNKNOWN_ROAD


def extract_district(payload: dict[str, Any]) -> str:
    address = payload.get("address") or {}
    return _first_text(address.get(name) for name in DISTRICT_FIELDS) or UNKNOWN_DISTRICT


class EnrichmentCache:
    """Resolve road/district for an item, hitting the geocoder only on a full miss.

    Results are written under every identity key of the item. Failures are
    never cached so the item is retried on the next pass.
    """

    def __init__(self, store: KeyValueStore, geocoder: Geocoder) -> None:
        self.geocoder = geocoder
        self.roads = JsonCache(store, ROAD_CACHE)
        self.districts = JsonCache(store, DISTRICT_CACHE)

    def cached(self, item: DefectItem) -> Optional[Enrichment]:
        keys = identity_keys(item)
        road = lookup_first(self.roads.load(), keys)
        district = lookup_first(self.districts.load(), keys)
        if road is None or district is None:
            return None
        return Enrichment(road_name=road, district=district)

    def resolve(self, item: DefectItem) -> Enrichment:
        hit = self.cached(item)
        if hit is not None:
            return hit
        return self.lookup(item)

    def lookup(self, item: DefectItem) -> Enrichment:
        """External lookup for an item; always issues at most one call."""
        coords = item.coordinates
        if coords is None:
            logger.info("enrichment.unparseable_location id=%s location=%r", item.id, item.location)
            return UNRESOLVED

        try:
            payload = self.geocoder.reverse(*coords)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("enrichment.lookup_failed id=%s error=%s", item.id, exc)
            return UNRESOLVED

        result = Enrichment(
            road_name=extract_road_name(payload),
            district=extract_district(payload),
        )
        keys = identity_keys(item)
        roads = self.roads.load()
        districts = self.districts.load()
        write_all(roads, keys, result.road_name)
        write_all(districts, keys, result.district)
        self.roads.save(roads)
        self.districts.save(districts)
        return result


class LookupQueue:
    """Sequential enrichment worker with a fixed delay between external calls.

    The delay is admission control against the geocoder's rate limit; it is
    only slept between two consecutive external calls, never for cache hits.
    """

    def __init__(
        self,
        cache: EnrichmentCache,
        delay_seconds: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self._pending: Deque[DefectItem] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def put(self, item: DefectItem) -> None:
        self._pending.append(item)

    def drain(self) -> dict[str, Enrichment]:
        """Process every queued item in order; returns results keyed by item id."""
        results: dict[str, Enrichment] = {}
        called = False
        while self._pending:
            item = self._pending.popleft()
            hit = self.cache.cached(item)
            if hit is not None:
                results[item.id] = hit
                continue
            # Unparseable locations never reach the geocoder, so they neither wait nor count.
            external = item.coordinates is not None
            if external and called and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)
            results[item.id] = self.cache.lookup(item)
            called = called or external

        resolved = sum(1 for r in results.values() if r.resolved)
        if results:
            logger.info("enrichment.drain.complete total=%s resolved=%s", len(results), resolved)
        return results
