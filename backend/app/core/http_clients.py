"""
HTTP client construction for upstream feeds and the proxy relays.

Two explicitly owned httpx.AsyncClient instances live on `app.state` for
the lifetime of the application (created in the lifespan, closed on
shutdown):

    upstream_client — talks to the real public feeds (USGS, NOAA, FIRMS)
    relay_client    — used by the hazard fetchers to reach the proxy relays;
                      routed in-process through the ASGI app unless
                      PROXY_BASE_URL points at a deployed instance
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Host used for in-process relay requests; never resolved over the network
IN_PROCESS_RELAY_BASE = "http://hazard-relay.internal"


def build_upstream_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Client for the public hazard feeds."""
    return httpx.AsyncClient(
        timeout=timeout or settings.UPSTREAM_TIMEOUT,
        follow_redirects=True,
        headers={"User-Agent": settings.UPSTREAM_USER_AGENT},
    )


def build_relay_client(app: FastAPI, base_url: Optional[str] = None) -> httpx.AsyncClient:
    """
    Client the fetchers use to call `/api/v1/proxy/...`.

    With no base URL the requests never leave the process: they are fed
    straight into the ASGI app.
    """
    base_url = base_url or settings.PROXY_BASE_URL
    if base_url:
        logger.info("Relay requests go to %s", base_url)
        return httpx.AsyncClient(base_url=base_url, timeout=settings.UPSTREAM_TIMEOUT)

    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url=IN_PROCESS_RELAY_BASE,
        timeout=settings.UPSTREAM_TIMEOUT,
    )


# ── FastAPI dependencies ──

def get_upstream_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.upstream_client
