"""Nominatim reverse-lookup client."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from rae.config import Settings
from rae.utils.logging import get_logger


logger = get_logger(__name__)


class ReverseGeocoder:
    """Resolve a coordinate pair into a place description.

    Raises ``httpx.HTTPError`` on failure; the enrichment cache decides how to
    degrade.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.transport = transport

    def reverse(self, lat: float, lon: float) -> dict[str, Any]:
        url = f"{self.settings.geocoder_base_url.rstrip('/')}/reverse"
        params = {"lat": lat, "lon": lon, "format": "jsonv2", "zoom": 16}
        headers = {"User-Agent": self.settings.geocoder_user_agent}

        with httpx.Client(
            timeout=self.settings.geocoder_timeout_seconds,
            headers=headers,
            transport=self.transport,
        ) as client:
            response = client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            raise httpx.DecodingError("reverse lookup returned a non-object payload")
        if "error" in payload:
            logger.info("geocoder.no_result lat=%s lon=%s error=%s", lat, lon, payload["error"])
        return payload
