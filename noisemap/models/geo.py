"""Geographic helpers shared by the feed and aggregation queries."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular lat/lon region used to scope a query.

    OpenSky expects ``lamin``, ``lomin``, ``lamax``, ``lomax``.
    """

    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def __post_init__(self) -> None:
        if self.lat_min > self.lat_max or self.lon_min > self.lon_max:
            raise ValueError("Bounding box minimums must not exceed maximums")

    def to_params(self) -> dict[str, float]:
        return {
            "lamin": self.lat_min,
            "lomin": self.lon_min,
            "lamax": self.lat_max,
            "lomax": self.lon_max,
        }


__all__ = ["BoundingBox"]
