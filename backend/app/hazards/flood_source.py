"""
flood_source.py — USGS Water Services gauge heights.

Two halves live here:

    reshape_water_services()  used by /api/v1/proxy/floods to turn the raw
                              NWIS instantaneous-values document into a
                              flat list of FloodSite records
    FloodFetcher              reads that list back and emits HazardEvents

Flood stage bands
=================
Real flood stage is gauge-specific; without per-site stage data a
coarse gauge-height banding (feet) is used, evaluated highest first:

    > 20  → 5  Major Flooding
    > 15  → 4  Moderate Flooding
    > 10  → 3  Minor Flooding
    >  7  → 2  Near Flood Stage
    else  → 1  Normal
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.models import HazardEvent, HazardType, SourceName
from backend.app.hazards.normalize import (
    finite_float,
    format_number,
    iso_or_now,
    text_or,
    valid_coordinates,
)

logger = logging.getLogger(__name__)

# (exclusive lower bound, severity, status), strictly descending
FLOOD_BANDS: List[Tuple[float, int, str]] = [
    (20.0, 5, "Major Flooding"),
    (15.0, 4, "Moderate Flooding"),
    (10.0, 3, "Minor Flooding"),
    (7.0, 2, "Near Flood Stage"),
]
NORMAL = (1, "Normal")


def classify_water_level(level: float) -> Tuple[int, str]:
    """Gauge height (ft) → (floodSeverity, status)."""
    for threshold, severity, status in FLOOD_BANDS:
        if level > threshold:
            return severity, status
    return NORMAL


@dataclass(frozen=True)
class FloodSite:
    site_code: str
    name: str
    water_level: float
    latitude: float
    longitude: float
    state: str
    status: str
    flood_severity: int
    date_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "siteCode": self.site_code,
            "name": self.name,
            "waterLevel": self.water_level,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "state": self.state,
            "status": self.status,
            "floodSeverity": self.flood_severity,
            "dateTime": self.date_time,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Relay side: NWIS document → FloodSite[]
# ═══════════════════════════════════════════════════════════════════════════

def _latest_reading(series: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    values = series.get("values")
    if not isinstance(values, list) or not values or not isinstance(values[0], dict):
        return None
    readings = values[0].get("value")
    if not isinstance(readings, list) or not readings:
        return None
    latest = readings[-1]
    return latest if isinstance(latest, dict) else None


def _parse_series(series: Any, index: int) -> Optional[FloodSite]:
    if not isinstance(series, dict):
        return None
    reading = _latest_reading(series)
    if reading is None:
        return None

    info = series.get("sourceInfo")
    if not isinstance(info, dict):
        info = {}

    geo = info.get("geoLocation")
    geo = geo.get("geogLocation") if isinstance(geo, dict) else None
    if not isinstance(geo, dict):
        return None
    coords = valid_coordinates(geo.get("latitude"), geo.get("longitude"))
    if coords is None:
        return None

    site_codes = info.get("siteCode")
    site_code = f"unknown-{index}"
    if isinstance(site_codes, list) and site_codes and isinstance(site_codes[0], dict):
        site_code = text_or(site_codes[0].get("value"), site_code)

    state = "Unknown"
    props = info.get("siteProperty")
    for prop in props if isinstance(props, list) else []:
        if isinstance(prop, dict) and prop.get("name") == "stateCd":
            state = text_or(prop.get("value"), state)
            break

    level = finite_float(reading.get("value"))
    water_level = level if level is not None else 0.0
    severity, status = classify_water_level(water_level)

    return FloodSite(
        site_code=site_code,
        name=text_or(info.get("siteName"), "Unknown Location"),
        water_level=water_level,
        latitude=coords[0],
        longitude=coords[1],
        state=state,
        status=status,
        flood_severity=severity,
        date_time=iso_or_now(reading.get("dateTime")),
    )


def reshape_water_services(raw: Any, limit: int = 100) -> List[FloodSite]:
    """Raw NWIS `value.timeSeries` → at most `limit` FloodSite records."""
    if not isinstance(raw, dict):
        return []
    value = raw.get("value")
    time_series = value.get("timeSeries") if isinstance(value, dict) else None
    if not isinstance(time_series, list):
        return []

    sites: List[FloodSite] = []
    for i, series in enumerate(time_series):
        site = _parse_series(series, i)
        if site is not None:
            sites.append(site)
        if len(sites) >= limit:
            break
    return sites


# ═══════════════════════════════════════════════════════════════════════════
# Fetcher side: FloodSite[] → HazardEvent[]
# ═══════════════════════════════════════════════════════════════════════════

def _site_to_event(site: Any, index: int) -> Optional[HazardEvent]:
    if not isinstance(site, dict):
        return None
    coords = valid_coordinates(site.get("latitude"), site.get("longitude"))
    if coords is None:
        return None

    level = finite_float(site.get("waterLevel"))
    water_level = level if level is not None else 0.0
    severity, status = classify_water_level(water_level)
    name = text_or(site.get("name"), "Unknown Location")
    state = text_or(site.get("state"), "Unknown")

    return HazardEvent(
        id=f"flood-{index}",
        title=f"{status} - {name}",
        description=(
            f"Gauge height {format_number(water_level)} ft at {name}, {state}. "
            f"Status: {status}"
        ),
        lat=coords[0],
        lng=coords[1],
        magnitude=float(severity),
        date=iso_or_now(site.get("dateTime")),
        type=HazardType.FLOOD,
        source="USGS Water Services",
    )


def parse_flood_sites(data: Any, limit: int = 100) -> List[HazardEvent]:
    if not isinstance(data, list):
        return []
    events: List[HazardEvent] = []
    for i, site in enumerate(data[:limit]):
        event = _site_to_event(site, i)
        if event is None:
            logger.debug("Skipping flood site #%d without coordinates", i)
            continue
        events.append(event)
    return events


class FloodFetcher(SourceFetcher):
    name = SourceName.FLOOD
    path = "/api/v1/proxy/floods"

    def parse(self, payload: Any) -> List[HazardEvent]:
        return parse_flood_sites(payload, limit=self.limit)
