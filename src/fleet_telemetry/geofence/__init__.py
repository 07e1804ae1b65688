"""Geofence containment and ENTRY/EXIT transition detection."""

from fleet_telemetry.geofence.geomath import EARTH_RADIUS_M, distance_meters, is_inside
from fleet_telemetry.geofence.models import (
    AlertMode,
    AlertTransition,
    Containment,
    ContainmentState,
    Geofence,
    TransitionKind,
)
from fleet_telemetry.geofence.state import InMemoryContainmentStore, KeyedLock
from fleet_telemetry.geofence.evaluator import GeofenceEvaluator

__all__ = [
    "EARTH_RADIUS_M",
    "AlertMode",
    "AlertTransition",
    "Containment",
    "ContainmentState",
    "Geofence",
    "GeofenceEvaluator",
    "InMemoryContainmentStore",
    "KeyedLock",
    "TransitionKind",
    "distance_meters",
    "is_inside",
]
