from datetime import datetime, timezone

from rae.engine.aggregation import aggregate_roads, group_by_road_name
from rae.engine.deadlines import DeadlineCache, add_business_days
from rae.models import DefectItem, DefectKind, Severity, Status
from rae.store import MemoryStore

FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


def _item(item_id: str, **overrides) -> DefectItem:
    payload = {
        "id": item_id,
        "kind": DefectKind.PATCH if item_id.startswith("PA-") else DefectKind.POTHOLE,
        "location": "13.0827, 80.2707",
        "count": 12,
        "status": Status.REPORTED,
        "reported_at": "2024-01-15T09:30:00Z",
    }
    payload.update(overrides)
    return DefectItem(**payload)


def test_every_item_lands_in_exactly_one_road(engine):
    engine.load(
        [
            _item("PH-1", location="13.0827, 80.2707"),
            _item("PH-2", location="13.0569, 80.2425"),
            _item("PA-1", location="13.0829, 80.2709"),
            _item("PH-3", location="13.0674, 80.2376"),
            _item("PH-4", location="40.0, -3.0"),
        ]
    )
    rows = engine.aggregates()

    ids = [m.id for row in rows for m in row.members]
    assert sorted(ids) == ["PA-1", "PH-1", "PH-2", "PH-3", "PH-4"]
    assert sum(r.num_potholes + r.num_patches for r in rows) == 5
    by_road = {r.road_name: r for r in rows}
    assert set(by_road) == {"Anna Salai", "Mount Road", "Unknown road"}
    assert (by_road["Anna Salai"].num_potholes, by_road["Anna Salai"].num_patches) == (1, 1)
    assert by_road["Mount Road"].district == "Guindy"
    assert by_road["Unknown road"].district == "Unknown"


def test_outlier_road_severity_is_medium(engine):
    engine.load([_item("PH-1", count=5), _item("PH-2", count=35)])
    (row,) = engine.aggregates()
    assert row.severity == Severity.MEDIUM


def test_patches_do_not_affect_severity(engine):
    engine.load([_item("PH-1", count=40), _item("PA-1", count=0), _item("PA-2", count=0)])
    (row,) = engine.aggregates()
    assert row.severity == Severity.HIGH
    assert row.num_patches == 2


def test_patch_only_road_has_unknown_severity():
    rows = aggregate_roads([], [_item("PA-1", road_name="Beach Road")], DeadlineCache(MemoryStore()))
    assert rows[0].severity == Severity.UNKNOWN
    assert rows[0].road_name == "Beach Road"


def test_average_reported_time_skips_unparseable(engine):
    engine.load(
        [
            _item("PH-1", reported_at="2024-01-15T08:00:00Z"),
            _item("PH-2", reported_at="2024-01-15T10:00:00Z"),
            _item("PH-3", reported_at="yesterday-ish"),
        ]
    )
    (row,) = engine.aggregates()
    assert row.avg_reported_time == "Jan 15, 2024 09:00"


def test_average_reported_time_missing(engine):
    engine.load([_item("PH-1", reported_at=None), _item("PH-2", reported_at="??")])
    (row,) = engine.aggregates()
    assert row.avg_reported_time == "--"


def test_district_is_first_non_empty_member():
    items = [
        _item("PH-1", road_name="Anna Salai", district=None),
        _item("PH-2", road_name="Anna Salai", district="Teynampet"),
    ]
    rows = aggregate_roads(items, [], DeadlineCache(MemoryStore()))
    assert rows[0].district == "Teynampet"


def test_server_due_date_wins_over_cache(store):
    deadlines = DeadlineCache(store)
    items = [_item("PH-1", road_name="Anna Salai", due_date="2024-01-30T12:00:00Z")]
    deadlines.set_deadline_if_missing("Anna Salai", Severity.HIGH, items, now=FIXED_NOW)

    (row,) = aggregate_roads(items, [], deadlines)
    assert row.deadline_source == "server"
    assert row.deadline == "Jan 30, 2024 12:00"


def test_cached_deadline_used_without_server_due_date(store):
    deadlines = DeadlineCache(store)
    items = [_item("PH-1", road_name="Anna Salai")]
    deadlines.set_deadline_if_missing("Anna Salai", Severity.HIGH, items, now=FIXED_NOW)

    (row,) = aggregate_roads(items, [], deadlines)
    assert row.deadline_source == "cache"
    assert row.deadline_at == add_business_days(FIXED_NOW, 3)
    assert row.deadline_at.tzinfo is not None
    assert row.deadline_at.astimezone(timezone.utc).weekday() == 3


def test_no_deadline_anywhere(store):
    (row,) = aggregate_roads([_item("PH-1", road_name="Anna Salai")], [], DeadlineCache(store))
    assert row.deadline == "--"
    assert row.deadline_source is None


def test_status_and_action_and_contractors():
    items = [
        _item("PH-1", road_name="Anna Salai", status=Status.ASSIGNED, contractor_id="c-1"),
        _item("PH-2", road_name="Anna Salai", status=Status.PENDING_VERIFICATION, contractor_id="c-2"),
        _item("PH-3", road_name="Anna Salai", status=Status.IN_PROGRESS, contractor_id="c-1"),
    ]
    (row,) = aggregate_roads(items, [], DeadlineCache(MemoryStore()))
    assert row.status == Status.PENDING_VERIFICATION
    assert row.action == "verify"
    assert row.contractor_ids == ["c-1", "c-2"]


def test_failed_enrichment_is_retried_next_pass(engine, geocoder):
    engine.load([_item("PH-1")])
    geocoder.offline = True
    (row,) = engine.aggregates()
    assert row.road_name == "Unknown road"

    geocoder.offline = False
    (row,) = engine.aggregates()
    assert row.road_name == "Anna Salai"
    assert row.district == "Chennai"


def test_enrichment_only_runs_for_items_missing_fields(engine, geocoder):
    engine.load([_item("PH-1", road_name="Preset Road", district="Preset District")])
    (row,) = engine.aggregates()
    assert row.road_name == "Preset Road"
    assert geocoder.calls == []


def test_group_by_road_name_uses_unknown_bucket():
    groups = group_by_road_name([_item("PH-1"), _item("PH-2", road_name="  ")])
    assert list(groups) == ["Unknown road"]
    assert len(groups["Unknown road"]) == 2
