"""
Same-origin proxy relays for hazard feeds that block cross-origin access.

Endpoints:
    GET /api/v1/proxy/tsunami    — NOAA tsunami Atom XML, passed through
    GET /api/v1/proxy/wildfires  — NASA FIRMS VIIRS CSV, passed through
    GET /api/v1/proxy/weather    — NWS active alerts GeoJSON, passed through
    GET /api/v1/proxy/floods     — USGS gauge heights reshaped to FloodSite[]

Relays add no logic beyond the flood reshaping. An upstream non-2xx is
returned as `{"error": ...}` with the upstream status code; anything
else that goes wrong becomes a 500 with a generic message.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from backend.app.api.schemas import ErrorEnvelope, FloodSiteOut
from backend.app.core.config import settings
from backend.app.core.errors import (
    HazardFeedError,
    MissingAPIKeyError,
    RelayError,
    UpstreamError,
)
from backend.app.core.http_clients import get_upstream_client
from backend.app.hazards.flood_source import reshape_water_services

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/proxy",
    tags=["proxy-relays"],
    responses={400: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}},
)

FIRMS_KEY_PLACEHOLDER = "FIRMS_API_KEY_PLACEHOLDER"


def _headers(accept: Optional[str] = None) -> Dict[str, str]:
    headers = {"User-Agent": settings.UPSTREAM_USER_AGENT}
    if accept:
        headers["Accept"] = accept
    return headers


async def _relay(
    client: httpx.AsyncClient,
    feed: str,
    url: str,
    accept: Optional[str] = None,
) -> httpx.Response:
    """GET the upstream; non-2xx raises UpstreamError with its status."""
    response = await client.get(url, headers=_headers(accept))
    if not response.is_success:
        logger.warning("%s upstream answered %d", feed, response.status_code,
                       extra={"upstream": url, "status_code": response.status_code})
        raise UpstreamError(feed, response.status_code)
    return response


@router.get("/tsunami", response_class=Response)
async def proxy_tsunami(client: httpx.AsyncClient = Depends(get_upstream_client)):
    """Relay the NOAA tsunami Atom feed verbatim."""
    try:
        upstream = await _relay(client, "tsunami", settings.TSUNAMI_FEED_URL, "application/xml")
        return Response(content=upstream.content, media_type="application/xml")
    except HazardFeedError:
        raise
    except Exception as e:
        logger.error("Tsunami proxy error: %s", e)
        raise RelayError("tsunami") from e


@router.get("/wildfires", response_class=Response)
async def proxy_wildfires(
    apiKey: Optional[str] = Query(None, description="NASA FIRMS map key; defaults to the server key"),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """Relay the last 24 h of VIIRS hotspots as CSV."""
    api_key = apiKey or settings.FIRMS_API_KEY
    if not api_key or api_key == FIRMS_KEY_PLACEHOLDER:
        raise MissingAPIKeyError("FIRMS")

    try:
        url = settings.FIRMS_AREA_URL.format(api_key=api_key)
        upstream = await _relay(client, "wildfire", url)
        return Response(content=upstream.content, media_type="text/csv")
    except HazardFeedError:
        raise
    except Exception as e:
        logger.error("Wildfire proxy error: %s", e)
        raise RelayError("wildfire") from e


@router.get("/weather")
async def proxy_weather(client: httpx.AsyncClient = Depends(get_upstream_client)):
    """Relay NWS active alerts as JSON."""
    try:
        upstream = await _relay(
            client, "weather", settings.NWS_ALERTS_URL, "application/geo+json",
        )
        return JSONResponse(content=upstream.json())
    except HazardFeedError:
        raise
    except Exception as e:
        logger.error("Weather proxy error: %s", e)
        raise RelayError("weather") from e


@router.get("/floods", response_model=List[FloodSiteOut])
async def proxy_floods(client: httpx.AsyncClient = Depends(get_upstream_client)):
    """Relay USGS gauge heights, reshaped to one record per active site."""
    try:
        upstream = await _relay(client, "flood", settings.USGS_WATER_SERVICES_URL)
        sites = reshape_water_services(upstream.json(), limit=settings.HAZARD_RESULT_LIMIT)
    except HazardFeedError:
        raise
    except Exception as e:
        logger.error("Flood proxy error: %s", e)
        raise RelayError("flood") from e

    logger.info("Flood relay: %d sites", len(sites), extra={"event_count": len(sites)})
    return [site.to_dict() for site in sites]
