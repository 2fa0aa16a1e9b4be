"""
SourceFetcher — common fetch / decode / parse skeleton for hazard feeds.

Failure isolation
=================
`fetch_result()` wraps download and parsing in one boundary: a network
error, a non-2xx status or an undecodable body becomes a failed
SourceResult with an empty event list, logged at WARNING. One feed being
down therefore never keeps the others off the map.

A fetcher marked `mandatory` re-raises instead; the aggregator treats that
as failure of the whole pass.

Record-level problems are handled inside `parse()`: record parsers return
None to mean "skip this record", so one malformed entry never costs the
rest of the batch.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from backend.app.core.config import settings
from backend.app.hazards.models import HazardEvent, SourceName, SourceResult

logger = logging.getLogger(__name__)


class SourceFetcher:
    """Base class: subclasses set `name` and `path`, and implement `parse()`."""

    name: SourceName
    path: str = ""
    mandatory: bool = False

    def __init__(self, client: httpx.AsyncClient, *, limit: Optional[int] = None):
        self.client = client
        self.limit = limit if limit is not None else settings.HAZARD_RESULT_LIMIT

    # ── Public API ──

    async def fetch(self) -> List[HazardEvent]:
        """Events for this source; [] when the source is unavailable."""
        result = await self.fetch_result()
        return result.events

    async def fetch_result(self) -> SourceResult:
        start = time.perf_counter()
        try:
            payload = await self.download()
            events = self.parse(payload)
        except Exception as e:
            if self.mandatory:
                raise
            logger.warning(
                "%s feed unavailable: %s", self.name.value, e,
                extra={"source": self.name.value, "upstream": self.path},
            )
            return SourceResult(self.name, success=False, error=str(e) or type(e).__name__)

        logger.info(
            "%s feed: %d events (%.0fms)",
            self.name.value, len(events), (time.perf_counter() - start) * 1000,
            extra={"source": self.name.value, "event_count": len(events)},
        )
        return SourceResult(self.name, events)

    # ── Hooks ──

    def params(self) -> Dict[str, str]:
        return {}

    async def download(self) -> Any:
        response = await self.client.get(self.path, params=self.params())
        response.raise_for_status()
        return self.decode(response)

    def decode(self, response: httpx.Response) -> Any:
        return response.json()

    def parse(self, payload: Any) -> List[HazardEvent]:
        raise NotImplementedError
