"""SLA deadlines: business-day arithmetic and the set-once deadline cache."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError

from rae.engine.identity import IdentityKey, RoadKey, lookup_first, member_keys, write_all
from rae.models import UNKNOWN_ROAD, DeadlineRecord, DefectItem, Severity
from rae.store.base import JsonCache, KeyValueStore
from rae.utils.logging import get_logger
from rae.utils.time import parse_timestamp, utcnow


logger = get_logger(__name__)

DEADLINE_CACHE = "rae.deadlines"

SLA_DAYS = {Severity.HIGH: 3, Severity.MEDIUM: 5, Severity.LOW: 7}
DEFAULT_SLA_DAYS = 7


def sla_days(severity: object) -> int:
    try:
        return SLA_DAYS.get(Severity(severity), DEFAULT_SLA_DAYS)
    except ValueError:
        return DEFAULT_SLA_DAYS


def add_business_days(start: datetime, n: int) -> datetime:
    """Advance one calendar day at a time, counting only Monday-Friday."""
    current = start
    added = 0
    while added < n:
        current += timedelta(days=1)
        if current.weekday() < 5:
            added += 1
    return current


def compute_deadline(severity: Severity, now: datetime) -> DeadlineRecord:
    return DeadlineRecord(
        assigned_at=now,
        deadline_at=add_business_days(now, sla_days(severity)),
        severity=severity,
    )


def resolve_deadline(
    existing: Optional[DeadlineRecord],
    candidate: DeadlineRecord,
) -> DeadlineRecord:
    """Set-once rule: an existing record always wins over a new computation."""
    return existing if existing is not None else candidate


def server_due_date(members: Iterable[DefectItem]) -> Optional[datetime]:
    """First parseable authoritative due date among the members."""
    for item in members:
        parsed = parse_timestamp(item.due_date)
        if parsed is not None:
            return parsed
    return None


class DeadlineCache:
    """Client-side fallback deadlines, one JSON object in the store.

    Records live under the road key and under every identity key of the
    road's members, so the value survives renames of the cache address. The
    "Unknown road" bucket is never used as an address: it collects unrelated
    items whose enrichment has not completed yet.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.cache = JsonCache(store, DEADLINE_CACHE)

    @staticmethod
    def _keys(road_key: str, members: Sequence[DefectItem]) -> List[IdentityKey]:
        keys: List[IdentityKey] = []
        if road_key and road_key != UNKNOWN_ROAD:
            keys.append(RoadKey(road_key))
        keys.extend(member_keys(members))
        return keys

    def lookup(
        self,
        road_key: str,
        members: Sequence[DefectItem] = (),
    ) -> Optional[DeadlineRecord]:
        raw = lookup_first(self.cache.load(), self._keys(road_key, members))
        if raw is None:
            return None
        try:
            return DeadlineRecord.model_validate(raw)
        except ValidationError:
            logger.warning("deadline.record_invalid road=%s", road_key)
            return None

    def set_deadline_if_missing(
        self,
        road_key: str,
        severity: Severity,
        members: Sequence[DefectItem] = (),
        now: Optional[datetime] = None,
    ) -> Optional[DeadlineRecord]:
        """Create the road's deadline unless one is already cached.

        Returns None when there is no key to address the record under.
        """
        existing = self.lookup(road_key, members)
        keys = self._keys(road_key, members)
        if existing is None and not keys:
            logger.warning("deadline.no_cache_key road=%s", road_key)
            return None

        candidate = compute_deadline(severity, now or utcnow()).model_copy(
            update={"keys": tuple(key.key for key in keys)}
        )
        record = resolve_deadline(existing, candidate)
        if record is existing:
            return record

        data = self.cache.load()
        write_all(data, keys, record.model_dump(mode="json"))
        self.cache.save(data)
        logger.info(
            "deadline.created road=%s severity=%s deadline_at=%s",
            road_key,
            severity.value,
            record.deadline_at.isoformat(),
        )
        return record

    def clear_deadline(self, road_key: str, members: Sequence[DefectItem] = ()) -> None:
        """Delete the road's record under every key it was ever written to."""
        existing = self.lookup(road_key, members)
        stale = {key.key for key in self._keys(road_key, members)}
        if existing is not None:
            stale.update(existing.keys)

        data = self.cache.load()
        removed = 0
        for key in stale:
            if data.pop(key, None) is not None:
                removed += 1
        if removed:
            self.cache.save(data)
            logger.info("deadline.cleared road=%s keys=%s", road_key, removed)
