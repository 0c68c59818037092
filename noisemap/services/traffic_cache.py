"""Time-boxed cache of road congestion samples."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import time
from typing import Callable, Protocol

from noisemap.config import settings
from noisemap.models.traffic import TrafficSample, TrafficSnapshot

logger = logging.getLogger("noisemap.traffic_cache")


class TrafficSource(Protocol):
    async def fetch_samples(self) -> list[TrafficSample]: ...


class TrafficCache:
    """Serve the last traffic batch, refreshing it only when stale.

    A failed refresh propagates to the caller and leaves the previous batch
    in place.
    """

    def __init__(
        self,
        source: TrafficSource,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds or settings.traffic_cache_ttl
        self._clock = clock
        self._lock = asyncio.Lock()
        self._samples: list[TrafficSample] | None = None
        self._fetched_at: float | None = None
        self._refreshed_at: datetime | None = None

    def _age(self) -> float | None:
        if self._fetched_at is None:
            return None
        return self._clock() - self._fetched_at

    def _cached_snapshot(self, ttl: float) -> TrafficSnapshot | None:
        age = self._age()
        if self._samples is None or age is None or age >= ttl:
            return None
        return TrafficSnapshot(
            samples=list(self._samples),
            cached=True,
            age_seconds=round(age, 3),
            refreshed_at=self._refreshed_at,
        )

    async def get(self, ttl: float | None = None) -> TrafficSnapshot:
        """Return the cached batch if younger than ``ttl``, else refresh."""

        ttl = self.ttl_seconds if ttl is None else ttl
        snapshot = self._cached_snapshot(ttl)
        if snapshot is not None:
            return snapshot

        async with self._lock:
            # Another caller may have refreshed while we waited.
            snapshot = self._cached_snapshot(ttl)
            if snapshot is not None:
                return snapshot
            return await self._refresh()

    async def force_refresh(self) -> TrafficSnapshot:
        async with self._lock:
            return await self._refresh()

    async def _refresh(self) -> TrafficSnapshot:
        samples = await self.source.fetch_samples()

        self._samples = list(samples)
        self._fetched_at = self._clock()
        self._refreshed_at = datetime.now(timezone.utc)
        logger.info("Traffic cache refreshed with %s samples", len(samples))

        return TrafficSnapshot(
            samples=list(samples),
            cached=False,
            age_seconds=0.0,
            refreshed_at=self._refreshed_at,
        )


__all__ = ["TrafficCache", "TrafficSource"]
