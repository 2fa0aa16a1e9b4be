"""
Pydantic schemas for the hazard feed API.

Field names follow the JSON the map front-end already consumes
(`lat`/`lng`, camelCase flood fields), not Python naming.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from backend.app.hazards.models import HazardType


class MarkerStyleOut(BaseModel):
    color: str
    radius: float
    fillOpacity: float = 0.7
    weight: int = 1


class HazardEventOut(BaseModel):
    """A single normalized hazard event."""
    id: str
    title: str
    description: str = ""
    lat: float
    lng: float
    magnitude: float = Field(..., description="Per-type size hint, not a common severity scale")
    date: str = Field(..., description="ISO-8601 UTC timestamp")
    type: HazardType
    source: Optional[str] = None
    url: Optional[str] = None
    style: Optional[MarkerStyleOut] = None


class HazardFeedResponse(BaseModel):
    """Response for GET /api/v1/hazards."""
    events: List[HazardEventOut]
    sources: str = Field(..., description="Provenance: feeds that contributed events")
    timestamp: str = Field(..., description="Display time of aggregation")
    count: int


class LegendEntryOut(BaseModel):
    label: str
    color: str
    type: HazardType


class FloodSiteOut(BaseModel):
    """One gauge site as returned by /api/v1/proxy/floods."""
    siteCode: str
    name: str
    waterLevel: float
    latitude: float
    longitude: float
    state: str
    status: str
    floodSeverity: int = Field(..., ge=1, le=5)
    dateTime: str


class ErrorEnvelope(BaseModel):
    error: str
    code: Optional[str] = None
