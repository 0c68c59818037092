"""Periodic flight ingestion and retention loops."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timedelta, timezone
import logging
import time
from typing import Protocol

from noisemap.config import Region, settings
from noisemap.errors import PersistenceFailure
from noisemap.models.air_traffic import FeedResult
from noisemap.models.geo import BoundingBox
from noisemap.services.broadcast import BroadcastHub
from noisemap.services.noise import build_emission_points
from noisemap.services.snapshot_store import SnapshotStore

logger = logging.getLogger("noisemap.scheduler")


class FeedClient(Protocol):
    async def fetch(self, bbox: BoundingBox) -> FeedResult: ...


class IngestScheduler:
    """Drive feed → noise estimate → broadcast → persist on a fixed period.

    A second, slower loop prunes old points. The loops are independent: a
    failure in one tick is logged and the next tick runs as scheduled.
    """

    def __init__(
        self,
        *,
        feed_client: FeedClient,
        hub: BroadcastHub,
        store: SnapshotStore,
        bbox: BoundingBox,
        flight_interval: float | None = None,
        retention_interval: float | None = None,
        retention_max_age: timedelta | None = None,
        regions: tuple[Region, ...] | None = None,
    ) -> None:
        self.feed_client = feed_client
        self.hub = hub
        self.store = store
        self.bbox = bbox
        self.flight_interval = flight_interval or settings.flight_poll_interval
        self.retention_interval = (
            retention_interval or settings.retention_interval_hours * 3600
        )
        self.retention_max_age = retention_max_age or timedelta(days=settings.retention_days)
        self.regions = regions if regions is not None else settings.regions

        self._flight_lock = asyncio.Lock()
        self._retention_lock = asyncio.Lock()
        self._flight_task: asyncio.Task | None = None
        self._retention_task: asyncio.Task | None = None

        self._flight_cycles = 0
        self._feed_failures = 0
        self._persistence_failures = 0
        self._retention_runs = 0
        self._last_flight_cycle: float | None = None
        self._last_point_count = 0

    async def run_flight_cycle(self) -> int:
        """Run one ingest tick and return how many points were published."""

        async with self._flight_lock:
            self._flight_cycles += 1
            self._last_flight_cycle = time.time()

            result = await self.feed_client.fetch(self.bbox)
            if not result.ok:
                self._feed_failures += 1
                logger.warning("Flight cycle skipped: %s", result.error)
                return 0

            observed_at = datetime.now(timezone.utc)
            points = build_emission_points(result.states, observed_at, self.regions)
            if not points:
                logger.debug(
                    "No airborne aircraft in %s decoded states", len(result.states)
                )
                return 0

            delivered = await self.hub.publish(points)
            self._last_point_count = len(points)

            try:
                await asyncio.to_thread(self.store.append, points)
            except PersistenceFailure as exc:
                self._persistence_failures += 1
                logger.error("Flight cycle persisted nothing: %s", exc)

            logger.info(
                "Flight cycle published %s points to %s subscribers",
                len(points),
                delivered,
            )
            return len(points)

    async def run_retention_cycle(self) -> int:
        """Prune old points; returns the number removed (0 on failure)."""

        async with self._retention_lock:
            self._retention_runs += 1
            try:
                return await asyncio.to_thread(self.store.prune, self.retention_max_age)
            except PersistenceFailure as exc:
                self._persistence_failures += 1
                logger.error("Retention cycle failed: %s", exc)
                return 0

    async def _flight_loop(self) -> None:
        while True:
            try:
                await self.run_flight_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:  # pragma: no cover
                logger.exception("Unexpected flight cycle failure")
            await asyncio.sleep(self.flight_interval)

    async def _retention_loop(self) -> None:
        while True:
            try:
                await self.run_retention_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:  # pragma: no cover
                logger.exception("Unexpected retention cycle failure")
            await asyncio.sleep(self.retention_interval)

    def start(self, *, ingest_flights: bool = True) -> None:
        """Spawn the retention loop and, if enabled, the flight loop."""

        if self.running:
            logger.warning("Ingest scheduler already running")
            return

        if ingest_flights:
            self._flight_task = asyncio.create_task(
                self._flight_loop(), name="flight-cycle"
            )
        else:
            logger.info("Flight ingestion disabled; only retention will run")
        self._retention_task = asyncio.create_task(
            self._retention_loop(), name="retention-cycle"
        )
        logger.info(
            "Ingest scheduler started (flight every %ss, retention every %ss)",
            self.flight_interval,
            self.retention_interval,
        )

    async def stop(self) -> None:
        for task in (self._flight_task, self._retention_task):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._flight_task = self._retention_task = None
        logger.info("Ingest scheduler stopped")

    @property
    def running(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._flight_task, self._retention_task)
        )

    @property
    def stats(self) -> dict:
        return {
            "running": self.running,
            "ingesting_flights": self._flight_task is not None
            and not self._flight_task.done(),
            "flight_cycles": self._flight_cycles,
            "feed_failures": self._feed_failures,
            "persistence_failures": self._persistence_failures,
            "retention_runs": self._retention_runs,
            "last_flight_cycle": self._last_flight_cycle,
            "last_point_count": self._last_point_count,
        }


__all__ = ["FeedClient", "IngestScheduler"]
