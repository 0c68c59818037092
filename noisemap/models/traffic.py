"""Road congestion models served by the traffic cache."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class TrafficSample(BaseModel):
    """Congestion reading for one monitored route."""

    lat: float = Field(..., description="Latitude of the route midpoint")
    lng: float = Field(..., description="Longitude of the route midpoint")
    intensity: float = Field(..., ge=0.3, le=1.0, description="Normalized congestion")
    route: str = Field(..., description="Route label")
    region: str = Field(..., description="Region the route belongs to")
    normal_duration_s: int = Field(..., description="Free-flow travel time in seconds")
    traffic_duration_s: int = Field(..., description="Travel time under current traffic")
    delay_s: int = Field(..., description="Extra seconds caused by traffic")
    delay_ratio: float = Field(..., description="Traffic duration over normal duration")


class TrafficSnapshot(BaseModel):
    """A traffic batch tagged with how it was obtained."""

    samples: list[TrafficSample] = Field(default_factory=list)
    cached: bool = Field(..., description="True when served without a refresh")
    age_seconds: float = Field(..., description="Seconds since the batch was fetched")
    refreshed_at: datetime = Field(..., description="When the batch was fetched (UTC)")


__all__ = ["TrafficSample", "TrafficSnapshot"]
