"""
tsunami_source.py — NOAA tsunami warning Atom feed (via /api/v1/proxy/tsunami).

Each Atom <entry> becomes one event. Warnings are frequently basin-wide
rather than tied to a site, so entries without a <georss:point> are
placed at a mid-Pacific marker (0, -150) instead of being dropped.
Magnitude is a fixed 7.5 used only to size the marker.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

import httpx

from backend.app.hazards.base import SourceFetcher
from backend.app.hazards.models import HazardEvent, HazardType, SourceName
from backend.app.hazards.normalize import iso_or_now, valid_coordinates

logger = logging.getLogger(__name__)

TSUNAMI_MAGNITUDE = 7.5
PACIFIC_PLACEHOLDER = (0.0, -150.0)


def _local(tag: str) -> str:
    """'{http://www.w3.org/2005/Atom}entry' → 'entry'."""
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag.split(":")[-1]


def _child_text(el: ET.Element, name: str) -> Optional[str]:
    for child in el:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return None


def _georss_point(entry: ET.Element) -> Optional[str]:
    for el in entry.iter():
        if _local(el.tag) == "point":
            return (el.text or "").strip()
    return None


def _parse_entry(entry: ET.Element, index: int) -> Optional[HazardEvent]:
    point = _georss_point(entry)
    if point is None:
        lat, lng = PACIFIC_PLACEHOLDER
    else:
        parts = point.split()
        coords = valid_coordinates(parts[0], parts[1]) if len(parts) >= 2 else None
        if coords is None:
            return None
        lat, lng = coords

    return HazardEvent(
        id=f"tsunami-{index}",
        title=_child_text(entry, "title") or "Tsunami Warning",
        description=_child_text(entry, "summary") or "",
        lat=lat,
        lng=lng,
        magnitude=TSUNAMI_MAGNITUDE,
        date=iso_or_now(_child_text(entry, "published")),
        type=HazardType.TSUNAMI,
        source="NOAA",
    )


def parse_tsunami_feed(xml_text: str) -> List[HazardEvent]:
    """Atom XML → events. Unparseable XML yields []."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.warning("Tsunami feed is not valid XML: %s", e,
                       extra={"source": SourceName.TSUNAMI.value})
        return []

    entries = [el for el in root.iter() if _local(el.tag) == "entry"]
    events: List[HazardEvent] = []
    for i, entry in enumerate(entries):
        event = _parse_entry(entry, i)
        if event is None:
            logger.debug("Skipping tsunami entry #%d with malformed georss:point", i)
            continue
        events.append(event)
    return events


class TsunamiFetcher(SourceFetcher):
    name = SourceName.TSUNAMI
    path = "/api/v1/proxy/tsunami"

    def decode(self, response: httpx.Response) -> str:
        return response.text

    def parse(self, payload: str) -> List[HazardEvent]:
        return parse_tsunami_feed(payload)
