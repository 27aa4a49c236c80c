"""Shared HTTP helpers."""

from __future__ import annotations

import time
from typing import Optional

import httpx


def get_with_retry(
    client: httpx.Client,
    url: str,
    params: Optional[dict] = None,
    retries: int = 3,
) -> httpx.Response:
    """GET with simple retry and backoff on 5xx and transport errors."""
    attempt = 0
    while True:
        try:
            response = client.get(url, params=params)
            if response.status_code >= 500 and attempt < retries:
                attempt += 1
                time.sleep(min(2**attempt, 8))
                continue
            return response
        except httpx.RequestError:
            attempt += 1
            if attempt > retries:
                raise
            time.sleep(min(2**attempt, 8))
