"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Every error leaves the API as a flat envelope so browser code written
against the relays can read `body.error` without caring which layer
failed:

    {"error": "Failed to fetch tsunami data: 503", "code": "UPSTREAM_ERROR"}

Usage:
    from backend.app.core.errors import UpstreamError, register_error_handlers

    raise UpstreamError("tsunami", 503)
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class HazardFeedError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class NotFoundError(HazardFeedError):
    """Resource not found (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, **identifiers},
        )


class RelayError(HazardFeedError):
    """A proxy relay failed for a reason other than an upstream status (500)."""

    def __init__(self, feed: str):
        super().__init__(
            message=f"Internal server error fetching {feed} data",
            status_code=500,
            error_code="RELAY_ERROR",
            details={"feed": feed},
        )


class UpstreamError(HazardFeedError):
    """Upstream feed answered with a non-2xx status; the status is relayed."""

    def __init__(self, feed: str, upstream_status: int):
        super().__init__(
            message=f"Failed to fetch {feed} data: {upstream_status}",
            status_code=upstream_status,
            error_code="UPSTREAM_ERROR",
            details={"feed": feed, "upstream_status": upstream_status},
        )


class MissingAPIKeyError(HazardFeedError):
    """A relay needs an API key that was neither passed nor configured (400)."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"{provider} API key not provided",
            status_code=400,
            error_code="MISSING_API_KEY",
            details={"provider": provider},
        )


class ExternalServiceError(HazardFeedError):
    """External API call failed (502)."""

    def __init__(self, service: str, message: str = "", **details: Any):
        super().__init__(
            message=f"External service '{service}' failed: {message}",
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service, **details},
        )


class EarthquakeFeedUnavailable(ExternalServiceError):
    """Every USGS earthquake feed failed; aggregation cannot proceed."""

    def __init__(self, attempts: int, last_error: str = ""):
        super().__init__(
            "USGS Earthquakes",
            f"all {attempts} feeds failed ({last_error})",
            attempts=attempts,
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def build_error_response(
    status_code: int,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build the flat `{error: str}` JSON envelope."""
    body: Dict[str, Any] = {"error": message}

    if error_code:
        body["code"] = error_code

    if details and not settings.is_production:
        body["details"] = details

    if request is not None and not settings.is_production:
        body["path"] = str(request.url.path)

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(HazardFeedError)
    async def handle_hazard_error(request: Request, exc: HazardFeedError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log("API Error [%s]: %s | details=%s", exc.error_code, exc.message, exc.details)
        return build_error_response(
            exc.status_code, exc.message, exc.error_code, exc.details, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        return build_error_response(500, message, "INTERNAL_ERROR", request=request)
