"""Reporting API client: location feed plus assign/verify/reject commands."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from rae.clients.http import get_with_retry
from rae.config import Settings
from rae.models import AssignmentRecord, LocationRecord
from rae.utils.logging import get_logger


logger = get_logger(__name__)


class ReportingClient:
    """Thin wrapper over the reporting endpoints.

    Every method raises ``httpx.HTTPError`` when the service is unreachable or
    answers with an error status. Commands are not retried: a repeated POST
    could double-apply on the server.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.settings.reporting_api_base_url.rstrip("/") + "/",
            timeout=self.settings.reporting_api_timeout_seconds,
            transport=self.transport,
        )

    def fetch_locations(self) -> List[LocationRecord]:
        """Fetch every aggregated location record; malformed rows are skipped."""
        with self._client() as client:
            response = get_with_retry(
                client,
                "locations",
                retries=self.settings.reporting_api_max_retries,
            )
            response.raise_for_status()
            payload = response.json()

        if isinstance(payload, dict):
            payload = payload.get("locations") or payload.get("data") or []

        records: List[LocationRecord] = []
        for row in payload:
            try:
                records.append(LocationRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("reporting.record_invalid error=%s", exc.error_count())
        logger.info("reporting.fetch.complete count=%s", len(records))
        return records

    def assign(self, location_id: str, contractor_id: str) -> AssignmentRecord:
        payload = self._post(f"locations/{location_id}/assign", {"contractorId": contractor_id})
        record = AssignmentRecord.model_validate(payload or {})
        if record.location_id is None:
            record = record.model_copy(update={"location_id": location_id})
        if record.contractor_id is None:
            record = record.model_copy(update={"contractor_id": contractor_id})
        return record

    def verify(self, location_id: str) -> None:
        self._post(f"locations/{location_id}/verify", {})

    def reject(self, location_id: str, remarks: str) -> None:
        self._post(f"locations/{location_id}/reject", {"remarks": remarks})

    def _post(self, path: str, body: dict[str, Any]) -> Any:
        with self._client() as client:
            response = client.post(path, json=body)
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()
