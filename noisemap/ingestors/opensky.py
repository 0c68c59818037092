"""Aircraft state feed client for the OpenSky REST API.

OpenSky returns each aircraft as a fixed-position array::

    0 icao24, 1 callsign, 2 origin_country, 3 time_position, 4 last_contact,
    5 longitude, 6 latitude, 7 baro_altitude, 8 on_ground, 9 velocity,
    10 true_track, 11 vertical_rate, 12 sensors, 13 geo_altitude,
    14 squawk, 15 spi, 16 position_source

Only the fields the noise pipeline needs are decoded; the arrays never leave
this module.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

import httpx

from noisemap.config import settings
from noisemap.models.air_traffic import AircraftState, FeedResult
from noisemap.models.geo import BoundingBox

logger = logging.getLogger("noisemap.ingestors.opensky")

_MIN_FIELDS = 9


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _as_int(value: Any) -> int | None:
    number = _as_float(value)
    return int(number) if number is not None else None


def _field(entry: list | tuple, index: int) -> Any:
    return entry[index] if len(entry) > index else None


def decode_state(entry: Any) -> Optional[AircraftState]:
    """Decode one positional state vector, or return None when malformed."""

    if not isinstance(entry, (list, tuple)) or len(entry) < _MIN_FIELDS:
        return None

    icao24 = entry[0]
    if not icao24 or not isinstance(icao24, str):
        return None

    geo_altitude = _as_float(_field(entry, 13))
    altitude = geo_altitude if geo_altitude is not None else _as_float(entry[7])

    return AircraftState(
        icao24=icao24.strip().lower(),
        latitude=_as_float(entry[6]),
        longitude=_as_float(entry[5]),
        altitude_m=altitude,
        on_ground=bool(entry[8]),
        velocity_mps=_as_float(_field(entry, 9)),
        time_position=_as_int(entry[3]),
    )


class OpenSkyFeedClient:
    """Fetch point-in-time aircraft snapshots for a bounding box."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        username: str | None = None,
        password: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.opensky_base_url
        self.timeout = timeout or settings.opensky_timeout
        username = username if username is not None else settings.opensky_username
        password = password if password is not None else settings.opensky_password
        self.auth = httpx.BasicAuth(username, password) if username and password else None
        self.transport = transport

    async def fetch(self, bbox: BoundingBox) -> FeedResult:
        """Return the aircraft currently inside ``bbox``.

        Never raises for upstream problems: any transport error, bad status
        or malformed payload yields an empty result carrying the failure.
        """

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, auth=self.auth
            ) as client:
                response = await client.get(self.base_url, params=bbox.to_params())
        except httpx.TimeoutException as exc:
            logger.warning("OpenSky request timed out: %s", exc)
            return FeedResult.failed("feed request timed out")
        except httpx.RequestError as exc:
            logger.warning("OpenSky request failed: %s", exc)
            return FeedResult.failed("feed request failed")

        if response.status_code == 429:
            logger.warning("OpenSky rate limit encountered: %s", response.text)
            return FeedResult.failed("feed rate limited")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "OpenSky returned HTTP %s: %s", exc.response.status_code, exc
            )
            return FeedResult.failed(f"feed returned HTTP {exc.response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("Failed to parse OpenSky JSON response: %s", exc)
            return FeedResult.failed("feed returned invalid JSON")

        if not isinstance(payload, dict):
            logger.warning("Unexpected OpenSky payload type: %s", type(payload).__name__)
            return FeedResult.failed("feed payload is not an object")

        raw_states = payload.get("states")
        if raw_states is None:
            # OpenSky sends null when nothing is in the box.
            raw_states = []
        elif not isinstance(raw_states, list):
            logger.warning("OpenSky states field is not a list")
            return FeedResult.failed("feed states field is malformed")

        states: list[AircraftState] = []
        for entry in raw_states:
            state = decode_state(entry)
            if state:
                states.append(state)

        logger.debug(
            "Decoded %s of %s OpenSky state vectors", len(states), len(raw_states)
        )
        return FeedResult(states=states, api_time=_as_int(payload.get("time")))


__all__ = ["OpenSkyFeedClient", "decode_state"]
