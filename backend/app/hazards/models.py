"""
Data structures shared across the hazard feed.

HazardEvent instances are rebuilt on every aggregation pass and never
persisted; `id` is only unique within one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class HazardType(str, Enum):
    EARTHQUAKE = "earthquake"
    TSUNAMI    = "tsunami"
    FIRE       = "fire"
    WEATHER    = "weather"
    FLOOD      = "flood"


class SourceName(str, Enum):
    """Aggregation order is the declaration order."""
    EARTHQUAKE = "earthquake"
    TSUNAMI    = "tsunami"
    WILDFIRE   = "wildfire"
    WEATHER    = "weather"
    FLOOD      = "flood"


# Provenance labels appended to HazardFeed.sources
SOURCE_LABELS: Dict[SourceName, str] = {
    SourceName.EARTHQUAKE: "USGS Earthquakes",
    SourceName.TSUNAMI:    "NOAA Tsunamis",
    SourceName.WILDFIRE:   "NASA FIRMS Wildfires",
    SourceName.WEATHER:    "NOAA Weather",
    SourceName.FLOOD:      "USGS Water Services",
}


@dataclass(frozen=True)
class HazardEvent:
    """
    One normalized hazard occurrence, ready to be drawn as a map marker.

    `magnitude` is a per-type size hint (Richter for earthquakes, a fixed
    7.5 for tsunamis, 2–5 for fires, weather and floods). It must not be
    compared across types.
    """
    id: str
    title: str
    description: str
    lat: float
    lng: float
    magnitude: float
    date: str  # ISO-8601, UTC, millisecond precision
    type: HazardType
    source: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "lat": self.lat,
            "lng": self.lng,
            "magnitude": self.magnitude,
            "date": self.date,
            "type": self.type.value,
        }
        if self.source is not None:
            d["source"] = self.source
        if self.url is not None:
            d["url"] = self.url
        return d


@dataclass
class SourceResult:
    """Outcome of one fetcher inside an aggregation pass."""
    source: SourceName
    events: List[HazardEvent] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self.source]

    @property
    def contributes(self) -> bool:
        """Only sources that answered with at least one event are credited."""
        return self.success and len(self.events) > 0


@dataclass
class HazardFeed:
    """Result of Aggregator.fetch_all()."""
    events: List[HazardEvent]
    sources: str
    timestamp: str  # display string; use HazardEvent.date for machine time
    results: List[SourceResult] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "sources": self.sources,
            "timestamp": self.timestamp,
        }
