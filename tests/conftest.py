from datetime import datetime, timezone

import httpx
import pytest

from rae.engine import DeadlineCache, EnrichmentCache, RoadAggregationEngine, VerifiedHistory
from rae.models import AssignmentRecord, LocationRecord
from rae.store import MemoryStore


# Monday morning.
FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


class FakeGeocoder:
    """Maps rounded coordinates to a road; unknown coordinates fail like a dead network."""

    def __init__(self, roads=None):
        self.roads = dict(roads or {})
        self.calls = []
        self.offline = False

    def reverse(self, lat, lon):
        self.calls.append((lat, lon))
        if self.offline:
            raise httpx.ConnectError("offline")
        key = (round(lat, 4), round(lon, 4))
        if key not in self.roads:
            raise httpx.ConnectError("no route to geocoder")
        road, district = self.roads[key]
        return {
            "display_name": f"{road}, {district}",
            "address": {"road": road, "state_district": district},
        }


class FakeReporting:
    def __init__(self):
        self.records = []
        self.offline = False
        self.fail_ids = set()
        self.due_dates = {}
        self.calls = []

    def _check(self, location_id):
        if self.offline or location_id in self.fail_ids:
            raise httpx.ConnectError(f"cannot reach reporting api for {location_id}")

    def fetch_locations(self):
        self.calls.append(("fetch",))
        if self.offline:
            raise httpx.ConnectError("offline")
        return [LocationRecord.model_validate(r) for r in self.records]

    def assign(self, location_id, contractor_id):
        self.calls.append(("assign", location_id, contractor_id))
        self._check(location_id)
        return AssignmentRecord(
            location_id=location_id,
            contractor_id=contractor_id,
            assigned_at=FIXED_NOW.isoformat(),
            due_date=self.due_dates.get(location_id),
        )

    def verify(self, location_id):
        self.calls.append(("verify", location_id))
        self._check(location_id)

    def reject(self, location_id, remarks):
        self.calls.append(("reject", location_id, remarks))
        self._check(location_id)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        {
            (13.0827, 80.2707): ("Anna Salai", "Chennai"),
            (13.0829, 80.2709): ("Anna Salai", "Chennai"),
            (13.0569, 80.2425): ("Mount Road", "Guindy"),
            (13.0674, 80.2376): ("Mount Road", "Guindy"),
        }
    )


@pytest.fixture
def reporting():
    return FakeReporting()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def engine(store, geocoder, reporting, sleeps):
    return RoadAggregationEngine(
        reporting=reporting,
        enrichment=EnrichmentCache(store, geocoder),
        deadlines=DeadlineCache(store),
        history=VerifiedHistory(store),
        delay_seconds=0.25,
        sleep=sleeps.append,
        clock=lambda: FIXED_NOW,
    )
