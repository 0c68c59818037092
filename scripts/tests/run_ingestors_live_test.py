#!/usr/bin/env python
"""
Run this to exercise the live flight feed and traffic source once, without
starting the server or touching the database.

Usage (from repo root):
    python scripts/tests/run_ingestors_live_test.py

Set TRAFFIC_API_KEY to include the road traffic check.
"""

import asyncio
from datetime import datetime, timezone

from noisemap.errors import NoiseMonitorError
from noisemap.ingestors import DirectionsTrafficClient, OpenSkyFeedClient
from noisemap.main import feed_bounding_box
from noisemap.services.noise import build_emission_points


async def main() -> None:
    now = datetime.now(timezone.utc)
    bbox = feed_bounding_box()

    print(f"=== Live feed + traffic test for {bbox} (UTC now: {now.isoformat()}) ===\n")

    # --- Flight feed ---
    print("Requesting aircraft states from OpenSky...")
    result = await OpenSkyFeedClient().fetch(bbox)
    if not result.ok:
        print(f"\nFeed unavailable: {result.error}")
    else:
        points = build_emission_points(result.states, now)
        print(
            f"\nDecoded {len(result.states)} states, {len(points)} airborne emission points. "
            "Showing a few:"
        )
        for idx, p in enumerate(points[:5], start=1):
            print(
                f"{idx}. id={p.id!r}, lat={p.lat:.5f}, lng={p.lng:.5f}, "
                f"noise_db={p.noise_level}, alt_m={p.altitude}, "
                f"speed_kmh={p.speed_kmh}, region={p.region}"
            )

    # --- Road traffic ---
    print("\nRequesting road traffic samples...")
    try:
        samples = await DirectionsTrafficClient().fetch_samples()
    except NoiseMonitorError as exc:
        print(f"\nTraffic unavailable: {exc}")
        return

    for sample in samples:
        print(sample.model_dump())


if __name__ == "__main__":
    asyncio.run(main())
