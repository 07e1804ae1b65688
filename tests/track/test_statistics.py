"""Tests for summarize_track."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from fleet_telemetry.track.models import TrackPoint
from fleet_telemetry.track.statistics import summarize_track

T0 = datetime(2026, 3, 1, 6, 0, 0)


def make_point(minutes: float, lat, lon, speed=None) -> TrackPoint:
    return TrackPoint(
        vehicle_id="truck-1",
        latitude=lat,
        longitude=lon,
        timestamp=T0 + timedelta(minutes=minutes),
        speed_kmh=speed,
    )


def test_empty_track_gives_none():
    assert summarize_track("truck-1", []) is None


def test_one_degree_east_in_an_hour():
    points = [make_point(0, 0.0, 0.0, 100.0), make_point(60, 0.0, 1.0, 120.0)]

    stats = summarize_track("truck-1", points)

    assert stats.distance_km == pytest.approx(111.195, rel=1e-4)
    assert stats.duration_minutes == pytest.approx(60.0)
    assert stats.average_speed_kmh == pytest.approx(111.195, rel=1e-4)
    assert stats.max_speed_kmh == 120.0
    assert stats.point_count == 2
    assert stats.start == points[0].timestamp
    assert stats.end == points[-1].timestamp


def test_points_without_fix_are_bridged():
    points = [
        make_point(0, 0.0, 0.0),
        make_point(30, None, None),
        make_point(60, 0.0, 1.0),
    ]

    stats = summarize_track("truck-1", points)

    assert stats.distance_km == pytest.approx(111.195, rel=1e-4)
    assert stats.point_count == 3
    assert stats.max_speed_kmh is None


def test_single_point_has_zero_speed():
    stats = summarize_track("truck-1", [make_point(0, 25.0, 121.5, 40.0)])

    assert stats.distance_km == 0.0
    assert stats.duration_minutes == 0.0
    assert stats.average_speed_kmh == 0.0
