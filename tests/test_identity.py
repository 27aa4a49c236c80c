from rae.engine.identity import (
    DbKey,
    GridKey,
    LocationKey,
    RoadKey,
    identity_keys,
    lookup_first,
    member_keys,
    write_all,
)
from rae.models import DefectItem


def _item(**overrides) -> DefectItem:
    payload = {"id": "PH-2024-001", "location": " 13.0827, 80.2707 "}
    payload.update(overrides)
    return DefectItem(**payload)


def test_keys_are_most_specific_first():
    keys = identity_keys(_item(grid_id="g-17", db_id=42))
    assert keys == [GridKey("g-17"), DbKey(42), LocationKey("13.0827,80.2707")]
    assert [k.key for k in keys] == ["grid:g-17", "db:42", "loc:13.0827,80.2707"]


def test_missing_identity_fields_are_skipped():
    assert identity_keys(_item()) == [LocationKey("13.0827,80.2707")]
    assert identity_keys(_item(location="")) == []


def test_location_normalization_ignores_spacing_and_case():
    a = identity_keys(_item(location="13.0827,80.2707"))
    b = identity_keys(_item(location="  13.0827 ,  80.2707"))
    assert a == b


def test_lookup_first_returns_first_hit():
    mapping = {"db:42": "from-db", "loc:13.0827,80.2707": "from-location"}
    keys = identity_keys(_item(grid_id="g-17", db_id=42))
    assert lookup_first(mapping, keys) == "from-db"
    assert lookup_first({}, keys) is None


def test_write_all_enables_less_specific_lookups():
    mapping: dict[str, str] = {}
    write_all(mapping, identity_keys(_item(grid_id="g-17", db_id=42)), "Anna Salai")
    assert lookup_first(mapping, identity_keys(_item())) == "Anna Salai"
    assert lookup_first(mapping, [DbKey(42)]) == "Anna Salai"


def test_member_keys_deduplicates():
    items = [_item(id="PH-1", db_id=1), _item(id="PH-2", db_id=2)]
    keys = member_keys(items)
    assert keys == [DbKey(1), LocationKey("13.0827,80.2707"), DbKey(2)]


def test_road_key_namespace():
    assert RoadKey("Anna Salai").key == "road:Anna Salai"
