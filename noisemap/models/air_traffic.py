"""Models for aircraft states decoded from the live feed."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Optional

from noisemap.errors import FeedUnavailable


@dataclass(frozen=True)
class AircraftState:
    """Normalized aircraft state for a single ingest cycle.

    Coordinates may be missing in the upstream record; ``has_position``
    tells whether the state can be placed on the map at all.
    """

    icao24: str
    latitude: Optional[float]
    longitude: Optional[float]
    altitude_m: Optional[float] = None
    on_ground: bool = False
    velocity_mps: Optional[float] = None
    time_position: Optional[int] = None

    def has_position(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
        )

    @property
    def is_airborne(self) -> bool:
        return not self.on_ground


@dataclass
class FeedResult:
    """Outcome of one feed fetch: decoded states or the reason there are none."""

    states: list[AircraftState] = field(default_factory=list)
    api_time: Optional[int] = None
    error: Optional[FeedUnavailable] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, reason: str) -> "FeedResult":
        return cls(states=[], error=FeedUnavailable(reason))


__all__ = ["AircraftState", "FeedResult"]
