"""Data models for the noise monitor backend."""

from .air_traffic import AircraftState, FeedResult
from .geo import BoundingBox
from .noise import DensityCell, EmissionPoint, NoiseDataUpdate, WelcomeMessage
from .traffic import TrafficSample, TrafficSnapshot

__all__ = [
    "AircraftState",
    "BoundingBox",
    "DensityCell",
    "EmissionPoint",
    "FeedResult",
    "NoiseDataUpdate",
    "TrafficSample",
    "TrafficSnapshot",
    "WelcomeMessage",
]
