"""
weather_source.py — NWS active alerts (via /api/v1/proxy/weather).

Most NWS alerts carry zone references rather than a geometry. Those are
pinned to a continental-US placeholder (40, -100) so they still show up;
only alerts with neither a usable Point geometry nor affectedZones are dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.models import HazardEvent, HazardType, SourceName
from backend.app.hazards.normalize import iso_or_now, text_or, valid_coordinates

logger = logging.getLogger(__name__)

SEVERITY_SCALE: Dict[str, int] = {
    "Extreme": 5,
    "Severe": 4,
    "Moderate": 3,
}
DEFAULT_SEVERITY = 2
US_CENTROID = (40.0, -100.0)
MAX_DESCRIPTION = 300


def alert_severity(value: Any) -> int:
    return SEVERITY_SCALE.get(value, DEFAULT_SEVERITY) if isinstance(value, str) else DEFAULT_SEVERITY


def truncate(text: str, limit: int = MAX_DESCRIPTION) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _alert_location(feature: Dict[str, Any], props: Dict[str, Any]) -> Optional[tuple]:
    geometry = feature.get("geometry")
    if isinstance(geometry, dict) and geometry.get("type") == "Point":
        coords = geometry.get("coordinates")
        if isinstance(coords, list) and len(coords) >= 2:
            point = valid_coordinates(coords[1], coords[0])
            if point is not None:
                return point

    zones = props.get("affectedZones")
    if isinstance(zones, list) and zones:
        return US_CENTROID
    return None


def _parse_alert(feature: Any, index: int) -> Optional[HazardEvent]:
    if not isinstance(feature, dict):
        return None
    props = feature.get("properties")
    if not isinstance(props, dict) or not props:
        return None

    location = _alert_location(feature, props)
    if location is None:
        return None
    lat, lng = location

    description = props.get("description")
    if not isinstance(description, str) or not description:
        description = "No description available"

    return HazardEvent(
        id=f"weather-{index}",
        title=text_or(props.get("headline"), text_or(props.get("event"), "Weather Alert")),
        description=truncate(description),
        lat=lat,
        lng=lng,
        magnitude=alert_severity(props.get("severity")),
        date=iso_or_now(props.get("sent") or props.get("effective")),
        type=HazardType.WEATHER,
        source="NOAA",
    )


def parse_weather_alerts(data: Any, limit: int = 100) -> List[HazardEvent]:
    if not isinstance(data, dict):
        return []
    features = data.get("features")
    if not isinstance(features, list):
        return []

    events: List[HazardEvent] = []
    for i, feature in enumerate(features[:limit]):
        event = _parse_alert(feature, i)
        if event is None:
            logger.debug("Skipping weather alert #%d without location", i)
            continue
        events.append(event)
    return events


class WeatherFetcher(SourceFetcher):
    name = SourceName.WEATHER
    path = "/api/v1/proxy/weather"

    def parse(self, payload: Any) -> List[HazardEvent]:
        return parse_weather_alerts(payload, limit=self.limit)
