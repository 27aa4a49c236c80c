import json

import httpx
import pytest

from rae.clients import ReportingClient, ReverseGeocoder
from rae.config import Settings
from rae.models import DefectKind, Severity, Status


def _settings() -> Settings:
    return Settings(
        REPORTING_API_BASE_URL="http://reporting.test/api",
        GEOCODER_BASE_URL="http://geo.test",
        GEOCODER_USER_AGENT="rae-tests/1.0",
    )


def test_fetch_locations_parses_records_and_skips_bad_rows():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/locations"
        return httpx.Response(
            200,
            json=[
                {
                    "id": "PH-2024-001",
                    "dbId": 11,
                    "gridId": 904,
                    "lat": 13.0827,
                    "lng": 80.2707,
                    "totalCount": 34,
                    "highestSeverity": "high",
                    "status": "Pending Verification",
                    "contractorId": 5,
                    "dueDate": "2024-01-20T10:00:00Z",
                },
                {"id": "PA-2024-002", "location": "13.05, 80.24", "status": "assigned", "roadName": "Mount Road"},
                {"status": "Reported"},
            ],
        )

    client = ReportingClient(_settings(), transport=httpx.MockTransport(handler))
    records = client.fetch_locations()

    assert [r.id for r in records] == ["PH-2024-001", "PA-2024-002"]
    pothole, patch = (r.to_item() for r in records)
    assert pothole.location == "13.0827, 80.2707"
    assert pothole.grid_id == "904"
    assert pothole.contractor_id == "5"
    assert pothole.severity == Severity.HIGH
    assert pothole.status == Status.PENDING_VERIFICATION
    assert pothole.location_id == "11"
    assert patch.kind == DefectKind.PATCH
    assert patch.status == Status.ASSIGNED
    assert patch.road_name == "Mount Road"
    assert patch.location_id == "PA-2024-002"


def test_assign_posts_contractor_and_returns_due_date():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"assignedAt": "2024-01-15T09:30:00Z", "dueDate": "2024-01-18T09:30:00Z"})

    client = ReportingClient(_settings(), transport=httpx.MockTransport(handler))
    record = client.assign("11", "c-7")

    assert seen == {"path": "/api/locations/11/assign", "body": {"contractorId": "c-7"}}
    assert record.location_id == "11"
    assert record.contractor_id == "c-7"
    assert record.due_date == "2024-01-18T09:30:00Z"


def test_reject_sends_remarks_and_verify_accepts_empty_body():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(204)

    client = ReportingClient(_settings(), transport=httpx.MockTransport(handler))
    client.reject("11", "Loose gravel")
    client.verify("11")

    assert bodies == [
        ("/api/locations/11/reject", {"remarks": "Loose gravel"}),
        ("/api/locations/11/verify", {}),
    ]


def test_command_error_status_raises_http_error():
    client = ReportingClient(
        _settings(), transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    with pytest.raises(httpx.HTTPError):
        client.verify("11")


def test_reverse_geocoder_sends_expected_query():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/reverse"
        assert request.url.params["format"] == "jsonv2"
        assert request.url.params["zoom"] == "16"
        assert request.url.params["lat"] == "13.0827"
        assert request.headers["User-Agent"] == "rae-tests/1.0"
        return httpx.Response(200, json={"address": {"road": "Anna Salai"}})

    geocoder = ReverseGeocoder(_settings(), transport=httpx.MockTransport(handler))
    assert geocoder.reverse(13.0827, 80.2707)["address"]["road"] == "Anna Salai"


def test_reverse_geocoder_raises_on_http_error():
    geocoder = ReverseGeocoder(
        _settings(), transport=httpx.MockTransport(lambda request: httpx.Response(429))
    )
    with pytest.raises(httpx.HTTPStatusError):
        geocoder.reverse(13.0827, 80.2707)
