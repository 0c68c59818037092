"""Road congestion endpoint backed by the traffic cache."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from noisemap.api.deps import get_traffic_cache
from noisemap.errors import ConfigurationMissing, TrafficSourceFailure
from noisemap.models.traffic import TrafficSnapshot
from noisemap.services import TrafficCache

router = APIRouter(prefix="/api/v1", tags=["traffic"])

logger = logging.getLogger("noisemap.api.traffic")


@router.get(
    "/traffic",
    response_model=TrafficSnapshot,
    summary="Current road congestion samples",
)
async def get_traffic(
    refresh: bool = Query(default=False, description="Bypass the cache"),
    cache: TrafficCache = Depends(get_traffic_cache),
) -> TrafficSnapshot:
    try:
        if refresh:
            return await cache.force_refresh()
        return await cache.get()
    except ConfigurationMissing as exc:
        logger.warning("Traffic refresh refused: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except TrafficSourceFailure as exc:
        logger.error("Traffic refresh failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
