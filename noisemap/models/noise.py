"""Noise observation, heatmap and WebSocket message models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

NOISE_DATA_UPDATE = "NOISE_DATA_UPDATE"
WELCOME = "WELCOME"


class EmissionPoint(BaseModel):
    """A single noise-generating observation at a point in time and space."""

    id: str = Field(..., description="Feed-assigned emitter identifier")
    lat: float = Field(..., description="Latitude in decimal degrees")
    lng: float = Field(..., description="Longitude in decimal degrees")
    noise_level: float = Field(..., ge=60.0, le=90.0, description="Estimated level in dB")
    source: Literal["flight"] = Field(default="flight", description="Emitter category")
    region: Optional[str] = Field(default=None, description="Nearest monitored region")
    timestamp: datetime = Field(..., description="Observation time (UTC)")
    altitude: Optional[int] = Field(default=None, description="Rounded altitude in metres")
    speed_kmh: Optional[int] = Field(default=None, description="Rounded ground speed in km/h")

    model_config = ConfigDict(frozen=True)


class DensityCell(BaseModel):
    """Grid cell of the aggregated emission density surface."""

    lat: float = Field(..., description="Grid-snapped latitude")
    lng: float = Field(..., description="Grid-snapped longitude")
    count: int = Field(..., description="Observations in the cell")
    density: float = Field(..., ge=0.0, le=1.0, description="Count normalized by capacity")
    noise_level: float = Field(..., description="Noise estimate derived from density")


class WelcomeMessage(BaseModel):
    """First frame sent to every new subscriber."""

    type: Literal["WELCOME"] = WELCOME
    message: str


class NoiseDataUpdate(BaseModel):
    """Full current batch of emission points pushed after each flight cycle."""

    type: Literal["NOISE_DATA_UPDATE"] = NOISE_DATA_UPDATE
    data: list[EmissionPoint]


__all__ = [
    "DensityCell",
    "EmissionPoint",
    "NOISE_DATA_UPDATE",
    "NoiseDataUpdate",
    "WELCOME",
    "WelcomeMessage",
]
