"""Text helpers for location strings."""

from __future__ import annotations

import math
import re
from typing import Optional, Tuple


def normalize_location(location: Optional[str]) -> str:
    """Lower-case and drop all whitespace so '13.08, 80.27' == '13.08,80.27'."""
    if not location:
        return ""
    return re.sub(r"\s+", "", location).lower()


def parse_lat_lon(location: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse a 'lat, lon' string into a coordinate pair."""
    if not location or "," not in location:
        return None

    lat_str, lon_str = location.split(",", maxsplit=1)
    try:
        lat = float(lat_str.strip())
        lon = float(lon_str.strip())
    except ValueError:
        return None

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return lat, lon


def format_lat_lon(lat: float, lon: float) -> str:
    return f"{lat}, {lon}"
