"""Shared fixtures for web tests."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from fleet_telemetry.geofence.models import AlertMode, Geofence
from fleet_telemetry.storage import SqliteFleetStore
from fleet_telemetry.track.models import TrackPoint
from fleet_telemetry.web.app import app

T0 = datetime(2026, 3, 1, 6, 0, 0)
DEPOT = (25.0330, 121.5654)
FAR = (25.0500, 121.5654)


@pytest.fixture
def client():
    """FastAPI test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_path(tmp_path) -> str:
    """Path to a fresh SQLite database with one ENTRY/EXIT depot fence."""
    path = str(tmp_path / "fleet.db")
    store = SqliteFleetStore(path)
    store.save_geofence(
        Geofence(
            id=1,
            name="depot",
            center_lat=DEPOT[0],
            center_lon=DEPOT[1],
            radius_meters=500.0,
            alert_mode=AlertMode.BOTH,
        )
    )
    store.close()
    return path


def make_track(vehicle_id: str, samples) -> list[TrackPoint]:
    """Build track points from ``(seconds, speed_kmh)`` pairs at the depot."""
    return [
        TrackPoint(
            vehicle_id=vehicle_id,
            latitude=DEPOT[0],
            longitude=DEPOT[1],
            timestamp=T0 + timedelta(seconds=s),
            speed_kmh=v,
        )
        for s, v in samples
    ]


def save_track(db_path: str, points) -> None:
    store = SqliteFleetStore(db_path)
    store.save_track(points)
    store.close()
