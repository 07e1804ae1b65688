"""Great-circle distance and circular containment.

Points may be given either as ``(lat, lon)`` tuples or as any object with
``latitude`` and ``longitude`` attributes (e.g. :class:`TrackPoint`).
"""

from __future__ import annotations

import math

from fleet_telemetry.errors import InvalidGeofenceConfig

EARTH_RADIUS_M = 6_371_000.0


def _coords(p) -> tuple[float, float]:
    if isinstance(p, tuple):
        lat, lon = p
    else:
        lat, lon = p.latitude, p.longitude
    if lat is None or lon is None:
        raise ValueError("point has no coordinates")
    return float(lat), float(lon)


def distance_meters(a, b) -> float:
    """Haversine distance between *a* and *b* in metres.

    Symmetric: ``distance_meters(a, b) == distance_meters(b, a)``.
    """
    lat1, lon1 = _coords(a)
    lat2, lon2 = _coords(b)
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def validate_fence(fence) -> tuple[float, float]:
    """Return the fence center, or raise :class:`InvalidGeofenceConfig`."""
    center = fence.center
    if center is None:
        raise InvalidGeofenceConfig(fence.id, "center is missing")
    radius = fence.radius_meters
    if radius is None or radius <= 0:
        raise InvalidGeofenceConfig(fence.id, f"radius must be positive, got {radius!r}")
    return center


def is_inside(point, fence) -> bool:
    """True if *point* lies within *fence* (boundary counts as inside)."""
    center = validate_fence(fence)
    return distance_meters(point, center) <= fence.radius_meters
