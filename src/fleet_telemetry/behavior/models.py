"""Driving-behaviour data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BehaviorType(str, Enum):
    """Kinds of driving anomaly the detector can emit."""

    RAPID_ACCEL = "RAPID_ACCEL"
    RAPID_BRAKE = "RAPID_BRAKE"
    OVERSPEED = "OVERSPEED"
    FATIGUE = "FATIGUE"
    SHARP_TURN = "SHARP_TURN"
    IDLE_LONG = "IDLE_LONG"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class BehaviorEvent:
    """One detected driving anomaly.

    ``event_time`` is the timestamp of the track point that triggered the
    event (the last point of the window for FATIGUE, the last idle point for
    IDLE_LONG).
    """

    vehicle_id: str
    type: BehaviorType
    risk_level: RiskLevel
    lat: float | None
    lon: float | None
    event_time: datetime
    description: str

    speed_kmh: float | None = None
    """Speed at the triggering point; ``None`` for FATIGUE."""

    acceleration_ms2: float | None = None
    """Set for RAPID_ACCEL and RAPID_BRAKE only."""

    duration_seconds: int | None = None
    """Length of the fatigue span or idle run, where applicable."""

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        return {
            "vehicle_id": self.vehicle_id,
            "type": self.type.value,
            "risk_level": self.risk_level.value,
            "lat": self.lat,
            "lon": self.lon,
            "speed_kmh": self.speed_kmh,
            "acceleration_ms2": self.acceleration_ms2,
            "event_time": self.event_time.isoformat(),
            "description": self.description,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_storage_dict(cls, d: dict) -> BehaviorEvent:
        """Create a :class:`BehaviorEvent` from a ``behavior_events`` row dict."""
        return cls(
            vehicle_id=str(d["vehicle_id"]),
            type=BehaviorType(d["type"]),
            risk_level=RiskLevel(d["risk_level"]),
            lat=d["lat"],
            lon=d["lon"],
            event_time=datetime.fromisoformat(d["event_time"]),
            description=d["description"] or "",
            speed_kmh=d.get("speed_kmh"),
            acceleration_ms2=d.get("acceleration_ms2"),
            duration_seconds=d.get("duration_seconds"),
        )
