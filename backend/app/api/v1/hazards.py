"""
FastAPI hazard feed endpoints.

Endpoints:
    GET  /api/v1/hazards          — Fresh aggregation from all five sources
    GET  /api/v1/hazards/latest   — Last snapshot kept by the background refresher
    GET  /api/v1/hazards/legend   — Marker legend for the map
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request

from backend.app.api.schemas import ErrorEnvelope, HazardFeedResponse, LegendEntryOut
from backend.app.core.errors import NotFoundError
from backend.app.hazards.aggregator import HazardAggregator
from backend.app.hazards.models import HazardFeed, HazardType
from backend.app.hazards.presentation import LEGEND, marker_style
from backend.app.hazards.refresher import HazardFeedRefresher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/hazards", tags=["hazards"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_aggregator(request: Request) -> HazardAggregator:
    return request.app.state.aggregator


def get_refresher(request: Request) -> Optional[HazardFeedRefresher]:
    return getattr(request.app.state, "refresher", None)


def _feed_response(
    feed: HazardFeed,
    types: Optional[List[HazardType]],
    with_style: bool,
) -> Dict[str, Any]:
    events = feed.events
    if types:
        wanted = set(types)
        events = [e for e in events if e.type in wanted]

    out = []
    for event in events:
        d = event.to_dict()
        if with_style:
            d["style"] = marker_style(event)
        out.append(d)

    return {
        "events": out,
        "sources": feed.sources,
        "timestamp": feed.timestamp,
        "count": len(out),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=HazardFeedResponse,
    response_model_exclude_none=True,
    responses={502: {"model": ErrorEnvelope}},
)
async def get_hazard_feed(
    type: Optional[List[HazardType]] = Query(None, description="Only these hazard types"),
    style: bool = Query(False, description="Attach marker colour/radius to each event"),
    aggregator: HazardAggregator = Depends(get_aggregator),
):
    """
    Aggregate earthquakes, tsunamis, wildfires, weather alerts and floods.

    Optional sources that fail are left out of `sources`; the request only
    fails (502) when no USGS earthquake feed can be reached.
    """
    feed = await aggregator.fetch_all()
    return _feed_response(feed, type, style)


@router.get(
    "/latest",
    response_model=HazardFeedResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorEnvelope}},
)
async def get_latest_feed(
    type: Optional[List[HazardType]] = Query(None),
    style: bool = Query(False),
    refresher: Optional[HazardFeedRefresher] = Depends(get_refresher),
):
    """Most recent feed collected by the background refresher."""
    if refresher is None or refresher.latest is None:
        raise NotFoundError("Hazard feed snapshot")
    return _feed_response(refresher.latest, type, style)


@router.get("/legend", response_model=List[LegendEntryOut])
async def get_legend():
    return [entry.to_dict() for entry in LEGEND]
