"""Road congestion ingestion using a directions-style traffic API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from noisemap.config import TrafficRoute, settings
from noisemap.errors import ConfigurationMissing, TrafficSourceFailure
from noisemap.models.traffic import TrafficSample

logger = logging.getLogger("noisemap.ingestors.traffic")

MIN_INTENSITY = 0.3
MAX_INTENSITY = 1.0


def congestion_intensity(
    normal_duration: float, traffic_duration: float, weight: float = 1.0
) -> float:
    """Map a traffic/normal duration pair to a congestion intensity.

    The raw ratio is stretched, capped at 1.0 and floored at 0.3 before the
    route weight is applied; the weighted value is kept inside [0.3, 1.0].
    """

    if normal_duration <= 0:
        raw = MIN_INTENSITY
    else:
        raw = min((traffic_duration / normal_duration - 1) * 2, MAX_INTENSITY)
    floored = max(raw, MIN_INTENSITY)
    return min(max(floored * weight, MIN_INTENSITY), MAX_INTENSITY)


def _format_point(point: tuple[float, float]) -> str:
    return f"{point[0]},{point[1]}"


def _leg_seconds(leg: dict[str, Any], key: str) -> int | None:
    duration = leg.get(key)
    if duration is None:
        return None
    if not isinstance(duration, dict):
        raise ValueError(f"leg {key} is not an object")
    value = duration.get("value")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return None


class DirectionsTrafficClient:
    """Fetch one congestion sample per configured route."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        routes: Sequence[TrafficRoute] | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.traffic_api_key
        self.routes = tuple(routes) if routes is not None else settings.traffic_routes
        self.base_url = base_url or settings.traffic_base_url
        self.timeout = timeout or settings.traffic_timeout
        self.transport = transport

    async def fetch_samples(self) -> list[TrafficSample]:
        """Query every route; skip the ones that fail.

        Raises ConfigurationMissing without an API key and
        TrafficSourceFailure when no route produced a sample.
        """

        if not self.api_key:
            raise ConfigurationMissing("Traffic API key is not configured")

        samples: list[TrafficSample] = []
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            for route in self.routes:
                try:
                    sample = await self._fetch_route(client, route)
                except httpx.TimeoutException as exc:
                    logger.warning("Traffic request for %s timed out: %s", route.label, exc)
                    continue
                except httpx.HTTPStatusError as exc:
                    logger.warning(
                        "Traffic source returned HTTP %s for %s",
                        exc.response.status_code,
                        route.label,
                    )
                    continue
                except httpx.RequestError as exc:
                    logger.warning("Traffic request for %s failed: %s", route.label, exc)
                    continue
                except ValueError as exc:
                    logger.warning("Traffic response for %s unusable: %s", route.label, exc)
                    continue
                samples.append(sample)

        if not samples:
            raise TrafficSourceFailure("No traffic route could be refreshed")

        logger.info("Fetched traffic for %s of %s routes", len(samples), len(self.routes))
        return samples

    async def _fetch_route(
        self, client: httpx.AsyncClient, route: TrafficRoute
    ) -> TrafficSample:
        params = {
            "origin": _format_point(route.origin),
            "destination": _format_point(route.destination),
            "departure_time": "now",
            "traffic_model": "best_guess",
            "key": self.api_key,
        }
        response = await client.get(self.base_url, params=params)
        response.raise_for_status()
        payload = response.json()

        status = payload.get("status") if isinstance(payload, dict) else None
        if status not in (None, "OK"):
            raise ValueError(f"directions status {status}")

        try:
            leg = payload["routes"][0]["legs"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError("response has no route legs") from exc
        if not isinstance(leg, dict):
            raise ValueError("route leg is not an object")

        normal = _leg_seconds(leg, "duration")
        in_traffic = _leg_seconds(leg, "duration_in_traffic")
        if normal is None:
            raise ValueError("response has no duration")
        if in_traffic is None:
            in_traffic = normal

        return TrafficSample(
            lat=(route.origin[0] + route.destination[0]) / 2,
            lng=(route.origin[1] + route.destination[1]) / 2,
            intensity=round(congestion_intensity(normal, in_traffic, route.weight), 3),
            route=route.label,
            region=route.region,
            normal_duration_s=normal,
            traffic_duration_s=in_traffic,
            delay_s=max(in_traffic - normal, 0),
            delay_ratio=round(in_traffic / normal, 3) if normal > 0 else 1.0,
        )


__all__ = ["DirectionsTrafficClient", "congestion_intensity"]
