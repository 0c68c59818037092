"""Accessors for the long-lived components stored on the application."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from noisemap.services import BroadcastHub, IngestScheduler, SnapshotStore, TrafficCache


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def get_traffic_cache(request: Request) -> TrafficCache:
    cache = getattr(request.app.state, "traffic_cache", None)
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Traffic cache is not initialized",
        )
    return cache


def get_scheduler(request: Request) -> IngestScheduler | None:
    return getattr(request.app.state, "scheduler", None)
