"""
earthquake_source.py — USGS real-time earthquake feed.

The USGS summary feeds already allow cross-origin access, so this is the
only fetcher that talks to its upstream directly instead of going
through a proxy relay.

Feed fallback
=============
    1. all_hour.geojson          — everything in the past hour
    2. all_day.geojson           — hour feed down or erroring
    3. significant_week.geojson  — last resort, curated significant events

Any failure (transport error, non-2xx, body that is not JSON) moves on to
the next feed. When all of them fail the fetcher raises
EarthquakeFeedUnavailable: earthquakes anchor the hazard map, so their
absence fails the whole aggregation pass.

GeoJSON mapping
===============
    lat       = geometry.coordinates[1]     (GeoJSON order is lng, lat, depth)
    lng       = geometry.coordinates[0]
    magnitude = properties.mag              (1 when absent)
    date      = properties.time             (epoch ms → ISO-8601)

Small quakes are kept; only structurally broken features are skipped.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import EarthquakeFeedUnavailable
from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.models import HazardEvent, HazardType, SourceName
from backend.app.hazards.normalize import (
    epoch_ms_to_iso,
    finite_float,
    format_number,
    now_iso,
    text_or,
    valid_coordinates,
)

logger = logging.getLogger(__name__)

DEFAULT_MAGNITUDE = 1.0


def _parse_usgs_feature(feature: Any, index: int) -> Optional[HazardEvent]:
    """Map one GeoJSON feature; None when it has no usable point geometry."""
    if not isinstance(feature, dict):
        return None

    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        return None
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None

    point = valid_coordinates(coords[1], coords[0])
    if point is None:
        return None
    lat, lng = point

    props = feature.get("properties")
    if not isinstance(props, dict):
        props = {}

    mag = finite_float(props.get("mag"))
    magnitude = mag if mag is not None else DEFAULT_MAGNITUDE
    mag_text = format_number(mag) if mag is not None else "?"
    place = text_or(props.get("place"), "Unknown location")

    depth = finite_float(coords[2]) if len(coords) > 2 else None
    depth_text = f"depth of {format_number(depth)}km" if depth is not None else "unknown depth"

    url = props.get("url")

    return HazardEvent(
        id=str(feature.get("id") or f"eq-{index}"),
        title=text_or(props.get("title"), f"M{mag_text} - {place}"),
        description=f"Magnitude {mag_text} earthquake at {depth_text}. {place}",
        lat=lat,
        lng=lng,
        magnitude=magnitude,
        date=epoch_ms_to_iso(props.get("time")) or now_iso(),
        type=HazardType.EARTHQUAKE,
        source="USGS",
        url=url if isinstance(url, str) else None,
    )


def parse_earthquake_collection(data: Any) -> List[HazardEvent]:
    """GeoJSON FeatureCollection → events, skipping broken features."""
    if not isinstance(data, dict):
        return []
    features = data.get("features")
    if not isinstance(features, list):
        return []

    events: List[HazardEvent] = []
    for i, feature in enumerate(features):
        event = _parse_usgs_feature(feature, i)
        if event is None:
            logger.debug("Skipping malformed USGS feature #%d", i)
            continue
        events.append(event)
    return events


class EarthquakeFetcher(SourceFetcher):
    """Mandatory source: raises EarthquakeFeedUnavailable when every feed fails."""

    name = SourceName.EARTHQUAKE
    mandatory = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        feed_urls: Optional[Sequence[str]] = None,
    ):
        super().__init__(client)
        self.feed_urls = list(feed_urls or settings.earthquake_feed_urls)
        self.path = self.feed_urls[0] if self.feed_urls else ""

    async def download(self) -> Dict[str, Any]:
        last_error = "no feeds configured"
        for url in self.feed_urls:
            try:
                response = await self.client.get(url)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                last_error = f"HTTP {e.response.status_code}"
            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e) or type(e).__name__
            else:
                if url != self.feed_urls[0]:
                    logger.info("Using fallback earthquake feed %s", url,
                                extra={"source": self.name.value, "upstream": url})
                return data

            logger.warning(
                "Earthquake feed %s failed: %s", url, last_error,
                extra={"source": self.name.value, "upstream": url},
            )

        raise EarthquakeFeedUnavailable(len(self.feed_urls), last_error)

    def parse(self, payload: Any) -> List[HazardEvent]:
        return parse_earthquake_collection(payload)
