"""Upstream data ingestors for the noise monitor."""

from .opensky import OpenSkyFeedClient, decode_state
from .traffic import DirectionsTrafficClient, congestion_intensity

__all__ = [
    "DirectionsTrafficClient",
    "OpenSkyFeedClient",
    "congestion_intensity",
    "decode_state",
]
