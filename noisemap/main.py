from __future__ import annotations

import contextlib
import logging
import time

from fastapi import FastAPI, Request

from noisemap.api import api_router
from noisemap.config import settings
from noisemap.db import init_db
from noisemap.ingestors import DirectionsTrafficClient, OpenSkyFeedClient
from noisemap.models.geo import BoundingBox
from noisemap.services import BroadcastHub, IngestScheduler, SnapshotStore, TrafficCache

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("noisemap")


def feed_bounding_box() -> BoundingBox:
    return BoundingBox(
        lat_min=settings.feed_lat_min,
        lat_max=settings.feed_lat_max,
        lon_min=settings.feed_lon_min,
        lon_max=settings.feed_lon_max,
    )


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline components once and run the ingest loops."""

    # ----- Startup -----
    init_db()
    logger.info("Database initialized")

    app.state.hub = BroadcastHub()
    app.state.store = SnapshotStore()
    app.state.traffic_cache = TrafficCache(DirectionsTrafficClient())

    if not settings.traffic_api_key:
        logger.warning("Traffic API key missing; /api/v1/traffic will refuse to refresh")

    scheduler = IngestScheduler(
        feed_client=OpenSkyFeedClient(),
        hub=app.state.hub,
        store=app.state.store,
        bbox=feed_bounding_box(),
    )
    scheduler.start(ingest_flights=settings.enable_flight_ingestor)
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        # ----- Shutdown -----
        await scheduler.stop()


app = FastAPI(title="UAE Noise Monitor Backend", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log basic request information for observability."""

    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "HTTP %s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.include_router(api_router)


@app.get("/", summary="Root")
def read_root() -> dict[str, str]:
    """Basic root endpoint for quick verification."""

    return {"message": "Noise monitor backend is running"}
