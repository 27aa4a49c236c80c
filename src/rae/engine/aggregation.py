"""Road aggregation engine: groups defects by road and runs the repair lifecycle."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError

from rae.config import Settings
from rae.engine.deadlines import DeadlineCache, server_due_date
from rae.engine.enrichment import EnrichmentCache, LookupQueue
from rae.engine.history import RoadHistoryRow, VerifiedHistory, group_by_road
from rae.engine.severity import aggregate_severity, item_label
from rae.engine.status import road_action, road_status
from rae.models import (
    UNKNOWN_DISTRICT,
    UNKNOWN_ROAD,
    AssignmentRecord,
    DefectItem,
    DefectKind,
    LocationRecord,
    RoadAggregate,
    Status,
    StatusSummary,
    VerifiedRepair,
)
from rae.store.base import KeyValueStore
from rae.utils.logging import get_logger
from rae.utils.time import format_display, mean_timestamp, utcnow


logger = get_logger(__name__)

# Anything the reporting service can throw at us; never propagated to callers.
EXTERNAL_ERRORS = (httpx.HTTPError, ValidationError, ValueError)


class ReportingService(Protocol):
    def fetch_locations(self) -> List[LocationRecord]: ...

    def assign(self, location_id: str, contractor_id: str) -> AssignmentRecord: ...

    def verify(self, location_id: str) -> None: ...

    def reject(self, location_id: str, remarks: str) -> None: ...


class UnknownItemError(ValueError):
    """No visible item has the requested id."""


class InvalidTransitionError(ValueError):
    """The item's current status does not allow the requested command."""


@dataclass
class BatchResult:
    """Outcome of a road-level command; no rollback of partial success."""

    road_name: str
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


def road_of(item: DefectItem) -> str:
    return (item.road_name or "").strip() or UNKNOWN_ROAD


def group_by_road_name(items: Iterable[DefectItem]) -> dict[str, List[DefectItem]]:
    """Partition items by resolved road name, first-occurrence order."""
    groups: dict[str, List[DefectItem]] = {}
    for item in items:
        groups.setdefault(road_of(item), []).append(item)
    return groups


def build_aggregate(
    road_name: str,
    potholes: Sequence[DefectItem],
    patches: Sequence[DefectItem],
    deadlines: DeadlineCache,
) -> RoadAggregate:
    members = [*potholes, *patches]
    district = next((m.district for m in members if m.district), UNKNOWN_DISTRICT)

    contractors: List[str] = []
    for member in members:
        if member.contractor_id and member.contractor_id not in contractors:
            contractors.append(member.contractor_id)

    deadline_at: Optional[datetime] = server_due_date(members)
    source = "server" if deadline_at is not None else None
    if deadline_at is None:
        record = deadlines.lookup(road_name, members)
        if record is not None:
            deadline_at = record.deadline_at
            source = "cache"

    return RoadAggregate(
        road_name=road_name,
        district=district,
        potholes=list(potholes),
        patches=list(patches),
        num_potholes=len(potholes),
        num_patches=len(patches),
        severity=aggregate_severity(potholes),
        status=road_status(members),
        action=road_action(members),
        avg_reported_time=format_display(mean_timestamp(m.reported_at for m in members)),
        deadline=format_display(deadline_at),
        deadline_at=deadline_at,
        deadline_source=source,
        contractor_ids=contractors,
    )


def aggregate_roads(
    potholes: Iterable[DefectItem],
    patches: Iterable[DefectItem],
    deadlines: DeadlineCache,
) -> List[RoadAggregate]:
    """One aggregate per road that has at least one member.

    Severity is averaged over potholes only; patches carry none of their own.
    """
    pothole_groups = group_by_road_name(potholes)
    patch_groups = group_by_road_name(patches)

    roads = list(pothole_groups)
    roads.extend(road for road in patch_groups if road not in pothole_groups)

    rows: List[RoadAggregate] = []
    for road in roads:
        road_potholes = pothole_groups.get(road, [])
        road_patches = patch_groups.get(road, [])
        if not road_potholes and not road_patches:
            continue
        rows.append(build_aggregate(road, road_potholes, road_patches, deadlines))
    return rows


class RoadAggregationEngine:
    """Owns the visible item set and every write to the persisted caches.

    Single-threaded: external calls are awaited one after another and local
    state is only touched after a command's calls have all been attempted.
    """

    def __init__(
        self,
        reporting: ReportingService,
        enrichment: EnrichmentCache,
        deadlines: DeadlineCache,
        history: VerifiedHistory,
        delay_seconds: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.reporting = reporting
        self.enrichment = enrichment
        self.deadlines = deadlines
        self.history = history
        self.queue = LookupQueue(enrichment, delay_seconds=delay_seconds, sleep=sleep)
        self.clock = clock
        self.offline = False
        self._items: dict[str, DefectItem] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[KeyValueStore] = None,
    ) -> "RoadAggregationEngine":
        from rae.clients import ReportingClient, ReverseGeocoder
        from rae.store import build_store

        settings = settings or Settings()
        store = store or build_store(settings)
        return cls(
            reporting=ReportingClient(settings),
            enrichment=EnrichmentCache(store, ReverseGeocoder(settings)),
            deadlines=DeadlineCache(store),
            history=VerifiedHistory(store),
            delay_seconds=settings.enrichment_delay_seconds,
        )

    # Read model

    @property
    def items(self) -> List[DefectItem]:
        return list(self._items.values())

    @property
    def potholes(self) -> List[DefectItem]:
        return [i for i in self._items.values() if i.kind == DefectKind.POTHOLE]

    @property
    def patches(self) -> List[DefectItem]:
        return [i for i in self._items.values() if i.kind == DefectKind.PATCH]

    def load(self, items: Iterable[DefectItem]) -> None:
        """Replace the visible set; verified items are never made visible."""
        self._items = {}
        verified: List[DefectItem] = []
        for item in items:
            if item.status == Status.VERIFIED:
                verified.append(item)
            else:
                self._items[item.id] = item
        if verified:
            self._record_server_verified(verified)

    def refresh(self) -> bool:
        """Reload from the Reporting API; keeps current items when offline."""
        try:
            records = self.reporting.fetch_locations()
        except EXTERNAL_ERRORS as exc:
            self.offline = True
            logger.warning("engine.refresh.failed error=%s", exc)
            return False

        self.offline = False
        self.load(record.to_item() for record in records)
        logger.info("engine.refresh.complete visible=%s", len(self._items))
        return True

    def enrich(self) -> None:
        """Fill road/district on every item lacking one; failures stay unresolved."""
        for item in self._items.values():
            if not item.road_name or not item.district:
                self.queue.put(item)
        if not len(self.queue):
            return

        for item_id, result in self.queue.drain().items():
            current = self._items.get(item_id)
            if current is None or not result.resolved:
                continue
            self._items[item_id] = current.model_copy(
                update={
                    "road_name": current.road_name or result.road_name,
                    "district": current.district or result.district,
                }
            )

    def aggregates(self) -> List[RoadAggregate]:
        self.enrich()
        return aggregate_roads(self.potholes, self.patches, self.deadlines)

    def aggregate_for(self, road_name: str) -> Optional[RoadAggregate]:
        for row in self.aggregates():
            if row.road_name == road_name:
                return row
        return None

    def summary(self) -> StatusSummary:
        counts = StatusSummary(verified=len(self.history.all()))
        for item in self._items.values():
            if item.status == Status.REPORTED:
                counts.reported += 1
            elif item.status == Status.ASSIGNED:
                counts.assigned += 1
            elif item.status == Status.IN_PROGRESS:
                counts.in_progress += 1
            elif item.status == Status.PENDING_VERIFICATION:
                counts.pending += 1
        return counts

    def history_rows(self) -> List[RoadHistoryRow]:
        return group_by_road(self.history.all())

    # Commands

    def assign_item(self, item_id: str, contractor_id: str) -> bool:
        item = self._get(item_id)
        if not item.is_unassigned:
            raise InvalidTransitionError(f"{item_id} is {item.status.value}, not assignable")
        self.enrich()
        result = self._assign([self._items[item_id]], contractor_id, road_of(self._items[item_id]))
        return result.ok

    def assign_road(self, road_name: str, contractor_id: str) -> BatchResult:
        """Assign every unassigned member of the road to one contractor."""
        members = self._road_members(road_name)
        eligible = [m for m in members if m.is_unassigned]
        return self._assign(eligible, contractor_id, road_name)

    def verify_item(self, item_id: str) -> bool:
        item = self._get(item_id)
        if item.status != Status.PENDING_VERIFICATION:
            raise InvalidTransitionError(f"{item_id} is {item.status.value}, not pending verification")
        self.enrich()
        result = self._verify([self._items[item_id]], road_of(self._items[item_id]))
        return result.ok

    def verify_road(self, road_name: str) -> BatchResult:
        """Verify every member of the road that is pending verification."""
        members = self._road_members(road_name)
        eligible = [m for m in members if m.status == Status.PENDING_VERIFICATION]
        return self._verify(eligible, road_name)

    def reject_item(self, item_id: str, remarks: str = "") -> bool:
        """Send a pending item back to In Progress; the road deadline is kept."""
        item = self._get(item_id)
        if item.status != Status.PENDING_VERIFICATION:
            raise InvalidTransitionError(f"{item_id} is {item.status.value}, not pending verification")
        try:
            self.reporting.reject(item.location_id, remarks)
        except EXTERNAL_ERRORS as exc:
            self.offline = True
            logger.warning("engine.reject.failed id=%s error=%s", item_id, exc)
            return False

        self._items[item_id] = item.model_copy(update={"status": Status.IN_PROGRESS})
        logger.info("engine.reject.complete id=%s", item_id)
        return True

    # Internals

    def _get(self, item_id: str) -> DefectItem:
        item = self._items.get(item_id)
        if item is None:
            raise UnknownItemError(item_id)
        return item

    def _road_members(self, road_name: str) -> List[DefectItem]:
        self.enrich()
        return group_by_road_name(self._items.values()).get(road_name, [])

    def _assign(self, items: Sequence[DefectItem], contractor_id: str, road_name: str) -> BatchResult:
        result = BatchResult(road_name=road_name)
        assigned: List[tuple[DefectItem, AssignmentRecord]] = []

        for item in items:
            try:
                record = self.reporting.assign(item.location_id, contractor_id)
            except EXTERNAL_ERRORS as exc:
                self.offline = True
                result.failed.append(item.id)
                logger.warning("engine.assign.failed id=%s error=%s", item.id, exc)
                continue
            assigned.append((item, record))
            result.succeeded.append(item.id)

        if not assigned:
            return result

        now = self.clock()
        for item, record in assigned:
            self._items[item.id] = item.model_copy(
                update={
                    "status": Status.ASSIGNED,
                    "contractor_id": record.contractor_id or contractor_id,
                    "assigned_at": record.assigned_at or now.isoformat(),
                    "due_date": record.due_date or item.due_date,
                }
            )

        members = group_by_road_name(self._items.values()).get(road_name, [])
        potholes = [m for m in members if m.kind == DefectKind.POTHOLE]
        self.deadlines.set_deadline_if_missing(
            road_name,
            aggregate_severity(potholes),
            members,
            now=now,
        )
        logger.info(
            "engine.assign.complete road=%s contractor=%s ok=%s failed=%s",
            road_name,
            contractor_id,
            len(result.succeeded),
            len(result.failed),
        )
        return result

    def _verify(self, items: Sequence[DefectItem], road_name: str) -> BatchResult:
        result = BatchResult(road_name=road_name)
        verified: List[DefectItem] = []

        for item in items:
            try:
                self.reporting.verify(item.location_id)
            except EXTERNAL_ERRORS as exc:
                self.offline = True
                result.failed.append(item.id)
                logger.warning("engine.verify.failed id=%s error=%s", item.id, exc)
                continue
            verified.append(item)
            result.succeeded.append(item.id)

        if not verified:
            return result

        fixed_at = self.clock().isoformat()
        for item in verified:
            self._items.pop(item.id, None)
        self.history.record(self._to_repair(item, fixed_at) for item in verified)

        remaining = group_by_road_name(self._items.values()).get(road_name, [])
        if not remaining:
            self.deadlines.clear_deadline(road_name, verified)
        logger.info(
            "engine.verify.complete road=%s ok=%s failed=%s remaining=%s",
            road_name,
            len(result.succeeded),
            len(result.failed),
            len(remaining),
        )
        return result

    def _record_server_verified(self, items: Sequence[DefectItem]) -> None:
        known = {repair.id for repair in self.history.all()}
        fresh = [item for item in items if item.id not in known]
        if fresh:
            self.history.record(self._to_repair(item, None) for item in fresh)

    @staticmethod
    def _to_repair(item: DefectItem, fixed_at: Optional[str]) -> VerifiedRepair:
        return VerifiedRepair(
            id=item.id,
            kind=item.kind,
            location=item.location,
            severity=item_label(item),
            contractor_id=item.contractor_id,
            road_name=item.road_name,
            district=item.district,
            fixed_at=fixed_at,
        )
