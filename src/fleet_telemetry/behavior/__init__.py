"""Driving-behaviour detection over ordered track points."""

from fleet_telemetry.behavior.models import BehaviorEvent, BehaviorType, RiskLevel
from fleet_telemetry.behavior.config import DetectorConfig
from fleet_telemetry.behavior.detector import BehaviorDetector

__all__ = [
    "BehaviorDetector",
    "BehaviorEvent",
    "BehaviorType",
    "DetectorConfig",
    "RiskLevel",
]
