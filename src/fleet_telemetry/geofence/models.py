"""Geofence data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AlertMode(str, Enum):
    """Which crossings of a fence raise an alert."""

    ENTRY = "ENTRY"
    EXIT = "EXIT"
    BOTH = "BOTH"

    @classmethod
    def parse(cls, value: str | AlertMode) -> AlertMode:
        """Accept enum members as well as ``"entry"``/``"exit"``/``"both"``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"unknown alert mode: {value!r}") from None

    @property
    def alerts_on_entry(self) -> bool:
        return self in (AlertMode.ENTRY, AlertMode.BOTH)

    @property
    def alerts_on_exit(self) -> bool:
        return self in (AlertMode.EXIT, AlertMode.BOTH)


class Containment(str, Enum):
    """Last known position of a vehicle relative to one fence."""

    UNKNOWN = "UNKNOWN"
    INSIDE = "INSIDE"
    OUTSIDE = "OUTSIDE"


class TransitionKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


@dataclass(frozen=True)
class Geofence:
    """A circular region with an alert mode.

    ``center_lat``/``center_lon`` may be ``None`` for a half-configured fence;
    such a fence is skipped by the evaluator rather than failing it.
    """

    id: int
    center_lat: float | None
    center_lon: float | None
    radius_meters: float
    alert_mode: AlertMode = AlertMode.BOTH
    active: bool = True
    name: str = ""

    @property
    def center(self) -> tuple[float, float] | None:
        if self.center_lat is None or self.center_lon is None:
            return None
        return (self.center_lat, self.center_lon)


@dataclass(frozen=True)
class ContainmentState:
    """Stored containment for one (vehicle, fence) pair."""

    vehicle_id: str
    fence_id: int
    last_known: Containment
    evaluated_at: datetime


@dataclass(frozen=True)
class AlertTransition:
    """An ENTRY or EXIT crossing detected by the evaluator."""

    fence_id: int
    vehicle_id: str
    lat: float
    lon: float
    kind: TransitionKind
    occurred_at: datetime

    def to_dict(self) -> dict:
        return {
            "fence_id": self.fence_id,
            "vehicle_id": self.vehicle_id,
            "lat": self.lat,
            "lon": self.lon,
            "kind": self.kind.value,
            "occurred_at": self.occurred_at.isoformat(),
        }
