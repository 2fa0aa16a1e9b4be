"""
wildfire_source.py — NASA FIRMS VIIRS hotspots (via /api/v1/proxy/wildfires).

The CSV columns are located by header name, never by position, since
FIRMS has reordered them between products:

    latitude, longitude   required; without them the batch is empty
    bright_ti4            I-4 channel brightness temperature (K)
    acq_date              acquisition date (YYYY-MM-DD)

Severity for marker sizing:

    severity = clamp(bright_ti4 / 100, 2, 5)

so a 200 K pixel and anything cooler sit at 2, anything at 500 K or more
sits at 5. Only the first HAZARD_RESULT_LIMIT data rows are read and the
output is ordered hottest first.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Dict, List, Optional, Sequence

import httpx

from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.models import HazardEvent, HazardType, SourceName
from backend.app.hazards.normalize import clamp, finite_float, iso_or_now, valid_coordinates

logger = logging.getLogger(__name__)

DEFAULT_BRIGHTNESS = 300.0
SEVERITY_MIN = 2.0
SEVERITY_MAX = 5.0


def fire_severity(brightness: float) -> float:
    return clamp(brightness / 100.0, SEVERITY_MIN, SEVERITY_MAX)


def _column(headers: Sequence[str], name: str) -> int:
    try:
        return list(headers).index(name)
    except ValueError:
        return -1


def _parse_row(
    values: Sequence[str],
    index: int,
    lat_idx: int,
    lon_idx: int,
    bright_idx: int,
    date_idx: int,
) -> Optional[HazardEvent]:
    if len(values) <= max(lat_idx, lon_idx):
        return None
    coords = valid_coordinates(values[lat_idx], values[lon_idx])
    if coords is None:
        return None
    lat, lng = coords

    brightness = None
    if 0 <= bright_idx < len(values):
        brightness = finite_float(values[bright_idx])
    if brightness is None:
        brightness = DEFAULT_BRIGHTNESS

    acq_date = values[date_idx] if 0 <= date_idx < len(values) else None

    return HazardEvent(
        id=f"fire-{index}",
        title=f"Active Fire - Brightness: {brightness:.1f}K",
        description=(
            "Active fire detected by VIIRS satellite with brightness "
            f"temperature of {brightness:.1f}K"
        ),
        lat=lat,
        lng=lng,
        magnitude=fire_severity(brightness),
        date=iso_or_now(acq_date),
        type=HazardType.FIRE,
        source="NASA FIRMS",
    )


def parse_firms_csv(text: str, limit: int = 100) -> List[HazardEvent]:
    """FIRMS CSV → events sorted by severity, hottest first."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) <= 1:
        return []

    rows = list(csv.reader(lines[: limit + 1]))
    headers = [h.strip() for h in rows[0]]
    lat_idx = _column(headers, "latitude")
    lon_idx = _column(headers, "longitude")
    if lat_idx == -1 or lon_idx == -1:
        logger.warning("FIRMS CSV has no latitude/longitude columns: %s", headers,
                       extra={"source": SourceName.WILDFIRE.value})
        return []
    bright_idx = _column(headers, "bright_ti4")
    date_idx = _column(headers, "acq_date")

    events: List[HazardEvent] = []
    for i, values in enumerate(rows[1:]):
        event = _parse_row(values, i, lat_idx, lon_idx, bright_idx, date_idx)
        if event is None:
            logger.debug("Skipping FIRMS row #%d", i)
            continue
        events.append(event)

    events.sort(key=lambda e: e.magnitude, reverse=True)
    return events


class WildfireFetcher(SourceFetcher):
    name = SourceName.WILDFIRE
    path = "/api/v1/proxy/wildfires"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(client, limit=limit)
        self.api_key = api_key

    def params(self) -> Dict[str, str]:
        # Without a key the relay falls back to its own FIRMS_API_KEY
        return {"apiKey": self.api_key} if self.api_key else {}

    def decode(self, response: httpx.Response) -> str:
        return response.text

    def parse(self, payload: str) -> List[HazardEvent]:
        return parse_firms_csv(payload, limit=self.limit)
