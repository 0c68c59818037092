"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from noisemap.api.deps import get_hub, get_scheduler
from noisemap.config import settings
from noisemap.services import BroadcastHub, IngestScheduler

router = APIRouter()


@router.get("/healthz", summary="Health check")
def health_check(
    hub: BroadcastHub = Depends(get_hub),
    scheduler: IngestScheduler | None = Depends(get_scheduler),
) -> dict[str, Any]:
    """Report liveness plus subscriber and ingest counters."""
    return {
        "status": "ok",
        "env": settings.noisemap_env,
        "subscribers": hub.subscriber_count,
        "scheduler": scheduler.stats if scheduler else None,
    }
