"""Detector thresholds."""

from __future__ import annotations

from dataclasses import dataclass

from fleet_telemetry.errors import ConfigError

_POSITIVE_FIELDS = (
    "rapid_accel_threshold",
    "rapid_brake_threshold",
    "overspeed_threshold",
    "fatigue_threshold_minutes",
    "sharp_turn_rate_deg_s",
    "idle_threshold_seconds",
)

_NON_NEGATIVE_FIELDS = ("sharp_turn_min_speed_kmh", "idle_speed_kmh")

_FLAG_FIELDS = ("sharp_turn_enabled", "idle_detection_enabled")


@dataclass(frozen=True)
class DetectorConfig:
    """Thresholds for :class:`~fleet_telemetry.behavior.detector.BehaviorDetector`.

    SHARP_TURN and IDLE_LONG detection are off unless enabled here.
    """

    rapid_accel_threshold: float = 3.0
    """Acceleration in m/s² above which RAPID_ACCEL fires."""

    rapid_brake_threshold: float = 3.0
    """Deceleration magnitude in m/s² above which RAPID_BRAKE fires."""

    overspeed_threshold: float = 60.0
    """Speed limit in km/h."""

    fatigue_threshold_minutes: int = 240
    """Span of a window, in whole minutes, that counts as fatigued driving."""

    sharp_turn_enabled: bool = False
    sharp_turn_rate_deg_s: float = 30.0
    """Heading change rate in °/s above which SHARP_TURN fires."""
    sharp_turn_min_speed_kmh: float = 20.0

    idle_detection_enabled: bool = False
    idle_speed_kmh: float = 3.0
    """Speeds at or below this count as idling."""
    idle_threshold_seconds: int = 600

    def __post_init__(self) -> None:
        for name in _POSITIVE_FIELDS + _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if name in _POSITIVE_FIELDS and value <= 0:
                raise ConfigError(f"{name} must be positive, got {value!r}")
            if value < 0:
                raise ConfigError(f"{name} must not be negative, got {value!r}")
        for name in _FLAG_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigError(f"{name} must be true or false, got {value!r}")
