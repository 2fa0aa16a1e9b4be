"""
Health check aggregation.

Checks:
    • Upstream feed configuration (FIRMS key present, URLs set)
    • Background refresher state (last snapshot, last error)

No check calls an upstream: a probe that fans out to five public APIs
would turn every load-balancer ping into external traffic.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "status": self.status.value}
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


def check_upstream_config() -> ComponentHealth:
    comp = ComponentHealth(name="upstream_feeds")
    comp.details = {
        "earthquake": settings.earthquake_feed_urls,
        "tsunami": settings.TSUNAMI_FEED_URL,
        "weather": settings.NWS_ALERTS_URL,
        "flood": settings.USGS_WATER_SERVICES_URL,
        "relay": settings.PROXY_BASE_URL or "in-process",
    }
    if not settings.earthquake_feed_urls:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No USGS earthquake feed configured"
    elif not settings.FIRMS_API_KEY:
        comp.status = HealthStatus.DEGRADED
        comp.message = "FIRMS_API_KEY not set; wildfires need a client-supplied key"
    else:
        comp.message = "All feeds configured"
    return comp


def check_refresher(refresher: Optional[Any]) -> ComponentHealth:
    comp = ComponentHealth(name="hazard_refresher")
    if refresher is None:
        comp.message = "Disabled"
        return comp

    comp.details = refresher.status()
    if refresher.last_error:
        comp.status = HealthStatus.DEGRADED
        comp.message = f"Last refresh failed: {refresher.last_error}"
    elif refresher.latest is None:
        comp.status = HealthStatus.DEGRADED
        comp.message = "No snapshot yet"
    else:
        comp.message = "Snapshot available"
    return comp


async def run_health_check(refresher: Optional[Any] = None) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )
    report.components = [check_upstream_config(), check_refresher(refresher)]

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    return report
