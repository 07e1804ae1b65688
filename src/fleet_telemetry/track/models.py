"""Track data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TrackPoint:
    """One timestamped GPS sample for a vehicle.

    Produced by the ingestion path; the analysis core only reads it.
    """

    vehicle_id: str

    latitude: float | None
    """Degrees north. ``None`` when the receiver lost its fix."""

    longitude: float | None
    """Degrees east. ``None`` when the receiver lost its fix."""

    timestamp: datetime

    speed_kmh: float | None = None
    """Ground speed in km/h, if the device reported one."""

    heading_deg: float | None = None
    """Course over ground in degrees clockwise from north [0, 360)."""

    @property
    def has_position(self) -> bool:
        """True if both coordinates are present."""
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_storage_dict(cls, d: dict) -> TrackPoint:
        """Create a :class:`TrackPoint` from a ``track_points`` row dict."""
        return cls(
            vehicle_id=str(d["vehicle_id"]),
            latitude=d["latitude"],
            longitude=d["longitude"],
            timestamp=datetime.fromisoformat(d["timestamp"]),
            speed_kmh=d.get("speed_kmh"),
            heading_deg=d.get("heading_deg"),
        )


@dataclass(frozen=True)
class TripStatistics:
    """Distance and speed summary of one vehicle's track over a window."""

    vehicle_id: str
    start: datetime
    end: datetime

    distance_km: float
    """Sum of great-circle legs between consecutive positioned points."""

    duration_minutes: float

    average_speed_kmh: float
    """``distance_km`` over the duration in hours; 0.0 for a zero-length window."""

    max_speed_kmh: float | None
    """Highest reported speed, or ``None`` if no point carried a speed."""

    point_count: int
