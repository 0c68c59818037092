"""Domain errors raised across the ingestion and query paths."""

from __future__ import annotations


class NoiseMonitorError(Exception):
    """Base class for recoverable noise monitor failures."""


class FeedUnavailable(NoiseMonitorError):
    """The aircraft feed could not be fetched or returned a malformed payload."""


class PersistenceFailure(NoiseMonitorError):
    """A durable append or prune did not complete; nothing was committed."""


class TrafficSourceFailure(NoiseMonitorError):
    """No traffic route could be refreshed from the upstream source."""


class ConfigurationMissing(NoiseMonitorError):
    """A credential required by a specific feature is not configured."""


__all__ = [
    "ConfigurationMissing",
    "FeedUnavailable",
    "NoiseMonitorError",
    "PersistenceFailure",
    "TrafficSourceFailure",
]
