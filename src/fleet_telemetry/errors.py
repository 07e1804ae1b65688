"""Exception hierarchy shared by the analysis core and its adapters."""

from __future__ import annotations


class FleetTelemetryError(Exception):
    """Base class for all fleet_telemetry errors."""


class InvalidGeofenceConfig(FleetTelemetryError, ValueError):
    """A geofence has no usable center or a non-positive radius.

    Raised by :func:`~fleet_telemetry.geofence.geomath.is_inside`; the
    evaluator catches it per fence, logs it, and moves on.
    """

    def __init__(self, fence_id: object, reason: str) -> None:
        super().__init__(f"geofence {fence_id!r}: {reason}")
        self.fence_id = fence_id
        self.reason = reason


class ConfigError(FleetTelemetryError, ValueError):
    """A threshold or table value could not be parsed or is out of range."""


class AnalysisUnavailable(FleetTelemetryError):
    """A store collaborator failed; the caller owns any retry policy."""


class AnalysisCancelled(FleetTelemetryError):
    """Behaviour detection was cancelled before it finished."""
