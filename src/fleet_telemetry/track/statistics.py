"""Trip distance and speed summary."""

from __future__ import annotations

from collections.abc import Sequence

from fleet_telemetry.geofence.geomath import distance_meters
from fleet_telemetry.track.models import TrackPoint, TripStatistics


def summarize_track(vehicle_id: str, points: Sequence[TrackPoint]) -> TripStatistics | None:
    """Return a :class:`TripStatistics` for *points*, or ``None`` if empty.

    *points* must be ascending by timestamp.  Points without coordinates
    contribute to the duration and max speed but not to the distance; a leg
    is measured between consecutive points that both have a position.
    """
    if not points:
        return None

    distance_m = 0.0
    prev = None
    for p in points:
        if not p.has_position:
            continue
        if prev is not None:
            distance_m += distance_meters(prev, p)
        prev = p

    start, end = points[0].timestamp, points[-1].timestamp
    duration_min = (end - start).total_seconds() / 60.0
    distance_km = distance_m / 1000.0
    avg = distance_km / (duration_min / 60.0) if duration_min > 0 else 0.0

    speeds = [p.speed_kmh for p in points if p.speed_kmh is not None]

    return TripStatistics(
        vehicle_id=vehicle_id,
        start=start,
        end=end,
        distance_km=distance_km,
        duration_minutes=duration_min,
        average_speed_kmh=avg,
        max_speed_kmh=max(speeds) if speeds else None,
        point_count=len(points),
    )
