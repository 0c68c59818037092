"""Altitude-based noise estimation and emission batch building."""

from __future__ import annotations

from datetime import datetime
import math
from typing import Iterable, Optional, Sequence

from noisemap.config import Region, settings
from noisemap.models.air_traffic import AircraftState
from noisemap.models.noise import EmissionPoint

LOW_ALTITUDE_M = 1000.0
HIGH_ALTITUDE_M = 10000.0
NEGLIGIBLE_LEVEL = 0.1
MIN_DECIBELS = 60.0
DECIBEL_RANGE = 30.0


def estimate_noise_level(altitude_m: Optional[float]) -> float:
    """Return a normalized ground noise level in [0, 1] for an altitude.

    Unknown or very high aircraft are negligible, anything below 1000 m is
    at the maximum, and the band in between falls off linearly. 10000 m is
    still inside the band and maps to 0.0.
    """

    if altitude_m is None or not math.isfinite(altitude_m) or altitude_m > HIGH_ALTITUDE_M:
        return NEGLIGIBLE_LEVEL
    if altitude_m < LOW_ALTITUDE_M:
        return 1.0
    return 1.0 - (altitude_m - LOW_ALTITUDE_M) / (HIGH_ALTITUDE_M - LOW_ALTITUDE_M)


def to_decibels(level: float) -> float:
    """Map a normalized level onto the 60-90 dB display scale."""

    return MIN_DECIBELS + level * DECIBEL_RANGE


def nearest_region(lat: float, lon: float, regions: Sequence[Region]) -> Optional[str]:
    if not regions:
        return None
    scale = math.cos(math.radians(lat))

    def distance(region: Region) -> float:
        return (region.lat - lat) ** 2 + ((region.lon - lon) * scale) ** 2

    return min(regions, key=distance).name


def _rounded(value: Optional[float]) -> Optional[int]:
    if value is None or not math.isfinite(value):
        return None
    return int(round(value))


def build_emission_points(
    states: Iterable[AircraftState],
    observed_at: datetime,
    regions: Sequence[Region] | None = None,
) -> list[EmissionPoint]:
    """Turn airborne, positioned aircraft into emission points."""

    regions = settings.regions if regions is None else regions
    points: list[EmissionPoint] = []
    for state in states:
        if not state.is_airborne or not state.has_position():
            continue

        level = estimate_noise_level(state.altitude_m)
        speed_kmh = state.velocity_mps * 3.6 if state.velocity_mps is not None else None
        points.append(
            EmissionPoint(
                id=state.icao24,
                lat=state.latitude,
                lng=state.longitude,
                noise_level=round(to_decibels(level), 1),
                region=nearest_region(state.latitude, state.longitude, regions),
                timestamp=observed_at,
                altitude=_rounded(state.altitude_m),
                speed_kmh=_rounded(speed_kmh),
            )
        )
    return points


__all__ = [
    "build_emission_points",
    "estimate_noise_level",
    "nearest_region",
    "to_decibels",
]
