from datetime import datetime, timezone
import math

import pytest

from noisemap.config import Region
from noisemap.models.air_traffic import AircraftState
from noisemap.services.noise import (
    build_emission_points,
    estimate_noise_level,
    nearest_region,
    to_decibels,
)

OBSERVED_AT = datetime(2024, 5, 3, 19, 40, tzinfo=timezone.utc)
REGIONS = (
    Region("Dubai", 25.2048, 55.2708),
    Region("Abu Dhabi", 24.4539, 54.3773),
    Region("Sharjah", 25.3463, 55.4209),
)


@pytest.mark.parametrize(
    "altitude, expected",
    [
        (500, 1.0),
        (1000, 1.0),
        (5500, 0.5),
        (10000, 0.0),
        (20000, 0.1),
        (None, 0.1),
        (-30, 1.0),
        (float("nan"), 0.1),
    ],
)
def test_estimate_noise_level_known_altitudes(altitude, expected):
    assert estimate_noise_level(altitude) == pytest.approx(expected)


def test_estimate_noise_level_stays_in_unit_range():
    for altitude in range(-500, 15001, 250):
        level = estimate_noise_level(float(altitude))
        assert 0.0 <= level <= 1.0


def test_ten_thousand_metres_is_interpolated_not_negligible():
    assert estimate_noise_level(10000) < 1.0
    assert estimate_noise_level(10000) != estimate_noise_level(10000.5)


def test_to_decibels_spans_display_scale():
    assert to_decibels(0.0) == 60.0
    assert to_decibels(1.0) == 90.0
    assert to_decibels(0.5) == 75.0


def test_build_emission_points_filters_ground_and_unpositioned():
    states = [
        AircraftState("a1", 25.2, 55.27, altitude_m=800.0, velocity_mps=100.0),
        AircraftState("a2", 25.2, 55.27, altitude_m=0.0, on_ground=True),
        AircraftState("a3", None, 55.27, altitude_m=3000.0),
        AircraftState("a4", 25.2, None, altitude_m=3000.0),
        AircraftState("a5", float("inf"), 55.0, altitude_m=3000.0),
    ]

    points = build_emission_points(states, OBSERVED_AT, REGIONS)

    assert [point.id for point in points] == ["a1"]


def test_build_emission_points_derives_fields():
    states = [
        AircraftState("abc123", 24.45, 54.38, altitude_m=5500.4, velocity_mps=200.0),
        AircraftState("def456", 25.35, 55.42, altitude_m=None, velocity_mps=None),
    ]

    first, second = build_emission_points(states, OBSERVED_AT, REGIONS)

    assert first.noise_level == 75.0
    assert first.source == "flight"
    assert first.region == "Abu Dhabi"
    assert first.altitude == 5500
    assert first.speed_kmh == 720
    assert first.timestamp == OBSERVED_AT

    assert second.noise_level == 63.0
    assert second.region == "Sharjah"
    assert second.altitude is None
    assert second.speed_kmh is None


def test_noise_levels_stay_on_display_scale():
    states = [
        AircraftState(f"x{alt}", 25.0, 55.0, altitude_m=float(alt))
        for alt in (0, 999, 1000, 4000, 9999, 10000, 10001, 40000)
    ]
    for point in build_emission_points(states, OBSERVED_AT, REGIONS):
        assert 60.0 <= point.noise_level <= 90.0
        assert math.isfinite(point.noise_level)


def test_nearest_region_without_regions_is_none():
    assert nearest_region(25.0, 55.0, ()) is None
    assert nearest_region(25.21, 55.28, REGIONS) == "Dubai"
