"""Live noise stream and historical heatmap endpoints."""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from noisemap.api.deps import get_hub, get_store
from noisemap.config import settings
from noisemap.models.geo import BoundingBox
from noisemap.models.noise import DensityCell, EmissionPoint
from noisemap.services import BroadcastHub, SnapshotStore

router = APIRouter(tags=["noise"])

logger = logging.getLogger("noisemap.api.noise")


@router.websocket("/ws/noise")
async def noise_stream(websocket: WebSocket) -> None:
    """Stream NOISE_DATA_UPDATE frames after each completed flight cycle."""

    hub: BroadcastHub = websocket.app.state.hub
    await websocket.accept()
    try:
        subscription = await hub.subscribe(websocket)
    except Exception as exc:  # noqa: BLE001 - peer left during the handshake
        logger.info("WebSocket subscribe failed: %s", exc)
        return

    try:
        while True:
            # Client frames carry no meaning; reading them detects disconnects.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unsubscribe(subscription)


@router.get(
    "/api/v1/noise/latest",
    response_model=list[EmissionPoint],
    summary="Most recently published emission batch",
)
async def latest_noise(hub: BroadcastHub = Depends(get_hub)) -> list[EmissionPoint]:
    return hub.last_known


@router.get(
    "/api/v1/noise/heatmap",
    response_model=list[DensityCell],
    summary="Flight emission density over a recent window",
)
def noise_heatmap(
    lat_min: Optional[float] = Query(default=None, ge=-90, le=90),
    lat_max: Optional[float] = Query(default=None, ge=-90, le=90),
    lon_min: Optional[float] = Query(default=None, ge=-180, le=180),
    lon_max: Optional[float] = Query(default=None, ge=-180, le=180),
    window_hours: int = Query(
        default=settings.heatmap_window_hours, ge=1, le=168, description="Lookback window"
    ),
    grid_size: float = Query(
        default=settings.heatmap_grid_size, gt=0, le=1, description="Cell size in degrees"
    ),
    min_count: int = Query(default=settings.heatmap_min_count, ge=1),
    store: SnapshotStore = Depends(get_store),
) -> list[DensityCell]:
    """Aggregate persisted flight points into grid cells, busiest first."""

    try:
        bbox = BoundingBox(
            lat_min=settings.feed_lat_min if lat_min is None else lat_min,
            lat_max=settings.feed_lat_max if lat_max is None else lat_max,
            lon_min=settings.feed_lon_min if lon_min is None else lon_min,
            lon_max=settings.feed_lon_max if lon_max is None else lon_max,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc

    cells = store.aggregate(
        bbox,
        window=timedelta(hours=window_hours),
        grid_size=grid_size,
        min_count=min_count,
        capacity=settings.heatmap_capacity,
    )
    logger.info(
        "Heatmap computed: cells=%s window=%sh grid=%s", len(cells), window_hours, grid_size
    )
    return cells
