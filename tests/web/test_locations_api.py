"""POST /api/locations and the fence alert endpoints."""

from __future__ import annotations

from tests.web.conftest import DEPOT, FAR, T0


def _ping(client, db_path, vehicle_id, latlon, seconds):
    lat, lon = latlon
    return client.post(
        "/api/locations",
        params={"db": db_path},
        json={
            "vehicle_id": vehicle_id,
            "latitude": lat,
            "longitude": lon,
            "timestamp": f"2026-03-01T06:00:{seconds:02d}",
            "speed_kmh": 30.0,
        },
    )


def test_entry_then_exit(client, db_path):
    vid = "loc-entry-exit"
    kinds = []
    for i, pos in enumerate([FAR, DEPOT, DEPOT, FAR]):
        resp = _ping(client, db_path, vid, pos, i * 10)
        assert resp.status_code == 200
        kinds.append([t["kind"] for t in resp.json()["transitions"]])

    assert kinds == [[], ["ENTRY"], [], ["EXIT"]]


def test_transition_payload(client, db_path):
    vid = "loc-payload"
    _ping(client, db_path, vid, FAR, 0)

    (t,) = _ping(client, db_path, vid, DEPOT, 10).json()["transitions"]

    assert t["fence_id"] == 1
    assert t["vehicle_id"] == vid
    assert t["lat"] == DEPOT[0]
    assert t["occurred_at"].startswith(T0.date().isoformat())


def test_transitions_are_stored_as_unhandled_alerts(client, db_path):
    vid = "loc-alerts"
    _ping(client, db_path, vid, FAR, 0)
    _ping(client, db_path, vid, DEPOT, 10)

    resp = client.get("/api/alerts/unhandled", params={"db": db_path})

    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    assert data["alerts"][0]["alert_type"] == "ENTRY"
    assert data["alerts"][0]["vehicle_id"] == vid


def test_handle_alert(client, db_path):
    vid = "loc-handle"
    _ping(client, db_path, vid, FAR, 0)
    _ping(client, db_path, vid, DEPOT, 10)
    alert_id = client.get("/api/alerts/unhandled", params={"db": db_path}).json()["alerts"][0]["id"]

    resp = client.post(
        f"/api/alerts/{alert_id}/handle",
        params={"db": db_path},
        json={"handler": "dispatcher-7"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"id": alert_id, "handled": True}
    assert client.get("/api/alerts/unhandled", params={"db": db_path}).json()["count"] == 0


def test_handle_unknown_alert_404(client, db_path):
    resp = client.post(
        "/api/alerts/9999/handle",
        params={"db": db_path},
        json={"handler": "dispatcher-7"},
    )
    assert resp.status_code == 404


def test_ping_without_fix_is_accepted(client, db_path):
    resp = client.post(
        "/api/locations",
        params={"db": db_path},
        json={"vehicle_id": "loc-nofix", "timestamp": "2026-03-01T06:00:00"},
    )

    assert resp.status_code == 200
    assert resp.json()["transitions"] == []


def test_out_of_range_latitude_422(client, db_path):
    resp = _ping(client, db_path, "loc-bad", (95.0, 121.5), 0)
    assert resp.status_code == 422
