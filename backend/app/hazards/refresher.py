"""
Periodic hazard feed refresh.

Keeps the most recent HazardFeed in memory so the map can poll a cheap
endpoint instead of triggering a full five-source fetch per viewer.
The loop is owned by the application lifespan and must be stopped on
shutdown so no task outlives the event loop.

Usage:
    refresher = HazardFeedRefresher(aggregator, interval_seconds=900)
    await refresher.start()
    ...
    await refresher.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from backend.app.hazards.aggregator import HazardAggregator
from backend.app.hazards.models import HazardFeed

logger = logging.getLogger(__name__)


class HazardFeedRefresher:

    def __init__(self, aggregator: HazardAggregator, interval_seconds: float = 900):
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self.latest: Optional[HazardFeed] = None
        self.last_refreshed: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> Optional[HazardFeed]:
        """One aggregation pass; keeps the previous snapshot on failure."""
        try:
            feed = await self.aggregator.fetch_all()
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.error("Hazard refresh failed, keeping previous snapshot: %s", e)
            return None
        self.latest = feed
        self.last_refreshed = datetime.now(timezone.utc)
        self.last_error = None
        return feed

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Hazard refresher started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Hazard refresher stopped")

    async def _run(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_seconds)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "last_refreshed": self.last_refreshed.isoformat() if self.last_refreshed else None,
            "last_error": self.last_error,
            "event_count": len(self.latest.events) if self.latest else 0,
        }
