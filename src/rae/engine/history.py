"""Verified repair history, grouped by road."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import ValidationError

from rae.models import UNKNOWN_ROAD, DefectKind, Severity, VerifiedRepair
from rae.store.base import JsonCache, KeyValueStore
from rae.utils.logging import get_logger
from rae.utils.time import format_display, parse_timestamp


logger = get_logger(__name__)

HISTORY_CACHE = "rae.verified_repairs"

_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


@dataclass
class RoadHistoryRow:
    road_name: str
    potholes: int = 0
    patches: int = 0
    last_fixed: str = "--"
    contractors: List[str] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)
    locations: List[str] = field(default_factory=list)
    severity: str = "N/A"
    status: str = "Verified"


class VerifiedHistory:
    """Persisted log of repairs that left the visible set."""

    def __init__(self, store: KeyValueStore) -> None:
        self.cache = JsonCache(store, HISTORY_CACHE)

    def record(self, repairs: Iterable[VerifiedRepair]) -> None:
        data = self.cache.load()
        changed = False
        for repair in repairs:
            data[repair.id] = repair.model_dump(mode="json")
            changed = True
        if changed:
            self.cache.save(data)

    def all(self) -> List[VerifiedRepair]:
        repairs: List[VerifiedRepair] = []
        for item_id, raw in self.cache.load().items():
            try:
                repairs.append(VerifiedRepair.model_validate(raw))
            except ValidationError:
                logger.warning("history.record_invalid id=%s", item_id)
        return repairs


def group_by_road(repairs: Iterable[VerifiedRepair]) -> List[RoadHistoryRow]:
    """Cumulative per-road view of verified repairs, sorted by road name."""
    rows: dict[str, RoadHistoryRow] = {}
    last_fixed: dict[str, Optional[datetime]] = {}
    best: dict[str, Optional[Severity]] = {}

    for repair in repairs:
        road = (repair.road_name or UNKNOWN_ROAD).strip() or UNKNOWN_ROAD
        row = rows.get(road)
        if row is None:
            row = rows[road] = RoadHistoryRow(road_name=road)
            last_fixed[road] = None
            best[road] = None

        if repair.kind == DefectKind.PATCH:
            row.patches += 1
        else:
            row.potholes += 1

        fixed = parse_timestamp(repair.fixed_at)
        if fixed is not None and (last_fixed[road] is None or fixed > last_fixed[road]):
            last_fixed[road] = fixed

        if repair.contractor_id and repair.contractor_id not in row.contractors:
            row.contractors.append(repair.contractor_id)
        row.ids.append(repair.id)
        if repair.location:
            row.locations.append(repair.location)

        if _RANK.get(repair.severity, 0) > _RANK.get(best[road], 0):
            best[road] = repair.severity

    for road, row in rows.items():
        row.last_fixed = format_display(last_fixed[road])
        if best[road] is not None:
            row.severity = best[road].value

    return sorted(rows.values(), key=lambda r: r.road_name.lower())
