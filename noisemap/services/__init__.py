"""Service-layer components of the noise monitor pipeline."""

from .broadcast import BroadcastHub, Subscription
from .noise import build_emission_points, estimate_noise_level, to_decibels
from .scheduler import IngestScheduler
from .snapshot_store import SnapshotStore
from .traffic_cache import TrafficCache

__all__ = [
    "BroadcastHub",
    "IngestScheduler",
    "SnapshotStore",
    "Subscription",
    "TrafficCache",
    "build_emission_points",
    "estimate_noise_level",
    "to_decibels",
]
