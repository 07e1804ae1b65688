"""Track points, CSV import and trip summaries."""

from fleet_telemetry.track.models import TrackPoint, TripStatistics
from fleet_telemetry.track.csv_io import iter_track_points
from fleet_telemetry.track.statistics import summarize_track

__all__ = ["TrackPoint", "TripStatistics", "iter_track_points", "summarize_track"]
