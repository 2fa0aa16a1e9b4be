"""
aggregator.py — Merge every hazard source into one HazardFeed.

═══════════════════════════════════════════════════════════════════════════
AGGREGATION RULES
═══════════════════════════════════════════════════════════════════════════

    1. Earthquakes are mandatory. If every USGS feed fails the exception
       propagates and the pass fails; this is the only source whose
       failure is visible to the caller.

    2. Tsunami, wildfire, weather and flood are optional. Each runs inside
       its own failure boundary and yields a SourceResult; a failed source
       logs a warning and contributes nothing.

    3. Requests are issued concurrently, but results are consumed in the
       fixed order of OPTIONAL_ORDER, so the provenance string never
       depends on which upstream answered first:

           "USGS Earthquakes, NOAA Tsunamis, NASA FIRMS Wildfires,
            NOAA Weather, USGS Water Services"

       A source is credited only when it succeeded with at least one event.

    4. No retry, caching or dedup: every call is a full fresh fetch.
       Periodic refresh belongs to the caller (see refresher.py).
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.earthquake_source import EarthquakeFetcher
from backend.app.hazards.flood_source import FloodFetcher
from backend.app.hazards.models import (
    SOURCE_LABELS,
    HazardEvent,
    HazardFeed,
    SourceName,
    SourceResult,
)
from backend.app.hazards.tsunami_source import TsunamiFetcher
from backend.app.hazards.weather_source import WeatherFetcher
from backend.app.hazards.wildfire_source import WildfireFetcher

logger = logging.getLogger(__name__)

OPTIONAL_ORDER: List[SourceName] = [
    SourceName.TSUNAMI,
    SourceName.WILDFIRE,
    SourceName.WEATHER,
    SourceName.FLOOD,
]


def display_timestamp(now: Optional[datetime] = None) -> str:
    """Locale-formatted wall-clock time for the map footer."""
    return (now or datetime.now()).strftime("%c")


class HazardAggregator:
    """
    Usage:
        aggregator = build_aggregator(upstream_client, relay_client)
        feed = await aggregator.fetch_all()
        print(feed.sources, len(feed.events))
    """

    def __init__(self, earthquakes: SourceFetcher, optional: Sequence[SourceFetcher] = ()):
        self.earthquakes = earthquakes
        rank = {name: i for i, name in enumerate(OPTIONAL_ORDER)}
        self.optional = sorted(optional, key=lambda f: rank.get(f.name, len(rank)))

    async def _guarded(self, fetcher: SourceFetcher) -> SourceResult:
        try:
            return await fetcher.fetch_result()
        except Exception as e:
            logger.warning(
                "Skipping %s: %s", SOURCE_LABELS[fetcher.name], e,
                extra={"source": fetcher.name.value},
            )
            return SourceResult(fetcher.name, success=False, error=str(e) or type(e).__name__)

    async def fetch_all(self) -> HazardFeed:
        outcomes = await asyncio.gather(
            self.earthquakes.fetch_result(),
            *(self._guarded(f) for f in self.optional),
            return_exceptions=True,
        )

        anchor = outcomes[0]
        if isinstance(anchor, BaseException):
            logger.error("Hazard aggregation failed: %s", anchor,
                         extra={"source": SourceName.EARTHQUAKE.value})
            raise anchor

        events: List[HazardEvent] = list(anchor.events)
        labels = [SOURCE_LABELS[SourceName.EARTHQUAKE]]
        results: List[SourceResult] = [anchor]

        for result in outcomes[1:]:
            results.append(result)
            if result.contributes:
                events.extend(result.events)
                labels.append(result.label)
            elif not result.success:
                logger.warning("%s omitted from feed: %s", result.label, result.error,
                               extra={"source": result.source.value})

        feed = HazardFeed(
            events=events,
            sources=", ".join(labels),
            timestamp=display_timestamp(),
            results=results,
        )
        logger.info("Hazard feed: %d events from %s", len(events), feed.sources,
                    extra={"event_count": len(events)})
        return feed


def build_aggregator(
    upstream_client: httpx.AsyncClient,
    relay_client: httpx.AsyncClient,
    *,
    firms_api_key: Optional[str] = None,
    earthquake_feeds: Optional[Sequence[str]] = None,
) -> HazardAggregator:
    """Wire the five standard fetchers to their clients."""
    return HazardAggregator(
        EarthquakeFetcher(upstream_client, feed_urls=earthquake_feeds),
        [
            TsunamiFetcher(relay_client),
            WildfireFetcher(relay_client, api_key=firms_api_key),
            WeatherFetcher(relay_client),
            FloodFetcher(relay_client),
        ],
    )
