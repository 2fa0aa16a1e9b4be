"""
Map presentation contract — marker styling and legend.

The map UI draws one circle marker per HazardEvent. Colour follows the
earthquake magnitude bands and radius grows linearly with magnitude, so
the values are meaningful only as relative sizes within one hazard type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from backend.app.hazards.models import HazardEvent, HazardType

# (minimum magnitude, colour), checked top-down
COLOR_BANDS = [
    (6.0, "#d7191c"),  # major
    (5.0, "#fdae61"),  # moderate
    (4.0, "#ffffbf"),  # light
]
MINOR_COLOR = "#1a9641"
MIN_RADIUS = 5.0
RADIUS_SCALE = 3.0


def marker_color(magnitude: float) -> str:
    for floor, color in COLOR_BANDS:
        if magnitude >= floor:
            return color
    return MINOR_COLOR


def marker_radius(magnitude: float) -> float:
    return max(magnitude * RADIUS_SCALE, MIN_RADIUS)


def marker_style(event: HazardEvent) -> Dict[str, Any]:
    return {
        "color": marker_color(event.magnitude),
        "radius": marker_radius(event.magnitude),
        "fillOpacity": 0.7,
        "weight": 1,
    }


@dataclass(frozen=True)
class LegendEntry:
    label: str
    color: str
    hazard_type: HazardType

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "color": self.color, "type": self.hazard_type.value}


LEGEND: List[LegendEntry] = [
    LegendEntry("Major Earthquake (6.0+)", "#d7191c", HazardType.EARTHQUAKE),
    LegendEntry("Moderate Earthquake (5.0-5.9)", "#fdae61", HazardType.EARTHQUAKE),
    LegendEntry("Light Earthquake (4.0-4.9)", "#ffffbf", HazardType.EARTHQUAKE),
    LegendEntry("Minor Earthquake (< 4.0)", "#1a9641", HazardType.EARTHQUAKE),
    LegendEntry("Tsunami Warning", "#0000ff", HazardType.TSUNAMI),
    LegendEntry("Active Fire", "#ff4500", HazardType.FIRE),
    LegendEntry("Severe Weather", "#800080", HazardType.WEATHER),
    LegendEntry("Flood", "#60a5fa", HazardType.FLOOD),
]
