"""Configuration settings for the noise monitor backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger("noisemap.config")

TRAFFIC_API_KEY_PARAMETER = "/noisemap/traffic/api_key"


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Parse an environment variable into a boolean with a default."""

    value = os.getenv(env_var)
    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def _ssm_client():
    # Default to a region so the client builds without AWS configuration.
    return boto3.client(
        "ssm",
        region_name=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
    )


@lru_cache(maxsize=1)
def get_traffic_api_key() -> str:
    """Return the directions API key from the environment or SSM.

    ``TRAFFIC_API_KEY`` wins when set. Otherwise the key is read from SSM
    Parameter Store, but only when ``NOISEMAP_USE_SSM`` is enabled. An empty
    string means the key is not configured; callers decide whether that is
    fatal for their feature.
    """

    value = os.getenv("TRAFFIC_API_KEY")
    if value:
        return value

    if not _get_bool("NOISEMAP_USE_SSM"):
        return ""

    try:
        response = _ssm_client().get_parameter(
            Name=TRAFFIC_API_KEY_PARAMETER, WithDecryption=True
        )
        value = response.get("Parameter", {}).get("Value")
    except (ClientError, BotoCoreError) as exc:  # pragma: no cover - AWS error passthrough
        logger.error("Failed to load traffic API key from SSM: %s", exc)
        return ""

    if not value:
        logger.warning("Received empty traffic API key from SSM")
        return ""

    return value


@dataclass(frozen=True)
class Region:
    """Named region used to tag observations with their nearest centre."""

    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class TrafficRoute:
    """A monitored road segment queried against the directions service."""

    label: str
    region: str
    origin: tuple[float, float]
    destination: tuple[float, float]
    weight: float = 1.0


DEFAULT_REGIONS: tuple[Region, ...] = (
    Region("Dubai", 25.2048, 55.2708),
    Region("Abu Dhabi", 24.4539, 54.3773),
    Region("Sharjah", 25.3463, 55.4209),
)

DEFAULT_TRAFFIC_ROUTES: tuple[TrafficRoute, ...] = (
    TrafficRoute(
        "Sheikh Zayed Road (Marina to Downtown)",
        "Dubai",
        (25.0784, 55.1414),
        (25.1972, 55.2744),
        1.0,
    ),
    TrafficRoute(
        "Al Ittihad Road (Dubai to Sharjah)",
        "Sharjah",
        (25.2654, 55.3343),
        (25.3286, 55.5172),
        0.9,
    ),
    TrafficRoute(
        "Corniche Road (Abu Dhabi)",
        "Abu Dhabi",
        (24.4979, 54.3832),
        (24.4129, 54.4753),
        0.8,
    ),
)


@dataclass
class Settings:
    """Application configuration loaded from environment variables."""

    noisemap_env: str = os.getenv("NOISEMAP_ENV", "local")
    log_level: str = os.getenv("NOISEMAP_LOG_LEVEL", "INFO")

    # Flight ingestion
    enable_flight_ingestor: bool = _get_bool("ENABLE_FLIGHT_INGESTOR", default=True)
    opensky_base_url: str = os.getenv(
        "OPENSKY_BASE_URL", "https://opensky-network.org/api/states/all"
    )
    opensky_timeout: float = float(os.getenv("OPENSKY_TIMEOUT", "15.0"))
    opensky_username: str | None = os.getenv("OPENSKY_USERNAME") or None
    opensky_password: str | None = os.getenv("OPENSKY_PASSWORD") or None
    flight_poll_interval: float = float(os.getenv("FLIGHT_POLL_INTERVAL_SECONDS", "30"))

    # UAE bounding box
    feed_lat_min: float = float(os.getenv("FEED_LAT_MIN", "22.5"))
    feed_lat_max: float = float(os.getenv("FEED_LAT_MAX", "26.5"))
    feed_lon_min: float = float(os.getenv("FEED_LON_MIN", "51.5"))
    feed_lon_max: float = float(os.getenv("FEED_LON_MAX", "56.5"))

    regions: tuple[Region, ...] = DEFAULT_REGIONS

    # Broadcast
    broadcast_send_timeout: float = float(os.getenv("BROADCAST_SEND_TIMEOUT", "5.0"))

    # Retention
    retention_days: int = int(os.getenv("NOISEMAP_RETENTION_DAYS", "7"))
    retention_interval_hours: float = float(os.getenv("RETENTION_INTERVAL_HOURS", "6"))

    # Heatmap aggregation
    heatmap_window_hours: int = int(os.getenv("HEATMAP_WINDOW_HOURS", "24"))
    heatmap_grid_size: float = float(os.getenv("HEATMAP_GRID_SIZE", "0.01"))
    heatmap_min_count: int = int(os.getenv("HEATMAP_MIN_COUNT", "2"))
    heatmap_capacity: int = int(os.getenv("HEATMAP_CAPACITY", "50"))

    # Road traffic
    traffic_base_url: str = os.getenv(
        "TRAFFIC_BASE_URL", "https://maps.googleapis.com/maps/api/directions/json"
    )
    traffic_timeout: float = float(os.getenv("TRAFFIC_TIMEOUT", "10.0"))
    traffic_cache_ttl: float = float(os.getenv("TRAFFIC_CACHE_TTL_SECONDS", "300"))
    traffic_routes: tuple[TrafficRoute, ...] = field(default=DEFAULT_TRAFFIC_ROUTES)
    traffic_api_key: str = ""


settings = Settings()
settings.traffic_api_key = get_traffic_api_key()

if not settings.traffic_api_key:
    logger.warning("Traffic API key not available at import time")

__all__ = [
    "Region",
    "Settings",
    "TrafficRoute",
    "get_traffic_api_key",
    "settings",
]
