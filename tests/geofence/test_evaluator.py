"""Tests for GeofenceEvaluator transition detection."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from fleet_telemetry.geofence.evaluator import GeofenceEvaluator
from fleet_telemetry.geofence.models import AlertMode, Containment, Geofence, TransitionKind
from fleet_telemetry.track.models import TrackPoint

T0 = datetime(2026, 3, 1, 8, 0, 0)
CENTER = (25.0330, 121.5654)
FAR = (25.0500, 121.5654)  # ~1.9 km north of CENTER


def make_fence(fence_id: int = 1, **overrides) -> Geofence:
    defaults = dict(
        id=fence_id,
        center_lat=CENTER[0],
        center_lon=CENTER[1],
        radius_meters=500.0,
    )
    defaults.update(overrides)
    return Geofence(**defaults)


def make_point(latlon, seconds: int = 0, vehicle_id: str = "truck-1") -> TrackPoint:
    lat, lon = latlon if latlon is not None else (None, None)
    return TrackPoint(
        vehicle_id=vehicle_id,
        latitude=lat,
        longitude=lon,
        timestamp=T0 + timedelta(seconds=seconds),
        speed_kmh=30.0,
    )


def make_path(*positions, vehicle_id: str = "truck-1") -> list[TrackPoint]:
    return [make_point(p, seconds=10 * i, vehicle_id=vehicle_id) for i, p in enumerate(positions)]


def replay(ev: GeofenceEvaluator, vehicle_id: str, points, fences) -> list:
    """Evaluate *points* in order and return every transition they fire."""
    fired = []
    for p in points:
        fired.extend(ev.evaluate(vehicle_id, p, fences))
    return fired


# ---------------------------------------------------------------------------
# Transition semantics
# ---------------------------------------------------------------------------


def test_out_in_in_out_fires_exactly_entry_then_exit():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.BOTH)

    fired = [
        ev.evaluate("truck-1", p, [fence])
        for p in make_path(FAR, CENTER, CENTER, FAR)
    ]

    assert [len(f) for f in fired] == [0, 1, 0, 1]
    assert fired[1][0].kind is TransitionKind.ENTRY
    assert fired[3][0].kind is TransitionKind.EXIT


def test_first_evaluation_only_records_state():
    ev = GeofenceEvaluator()
    fence = make_fence()

    assert ev.evaluate("truck-1", make_point(CENTER), [fence]) == []

    state = ev.store.get("truck-1", fence.id)
    assert state.last_known is Containment.INSIDE
    assert state.evaluated_at == T0


def test_staying_inside_never_refires():
    ev = GeofenceEvaluator()
    fence = make_fence()

    transitions = replay(ev, "truck-1", make_path(FAR, *[CENTER] * 10), [fence])

    assert [t.kind for t in transitions] == [TransitionKind.ENTRY]


def test_entry_only_fence_ignores_exit():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.ENTRY)

    transitions = replay(ev, "truck-1", make_path(FAR, CENTER, FAR, CENTER), [fence])

    assert [t.kind for t in transitions] == [TransitionKind.ENTRY, TransitionKind.ENTRY]


def test_exit_only_fence_ignores_entry():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.EXIT)

    transitions = replay(ev, "truck-1", make_path(FAR, CENTER, FAR), [fence])

    assert [t.kind for t in transitions] == [TransitionKind.EXIT]


def test_suppressed_transition_still_updates_state():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.EXIT)

    replay(ev, "truck-1", make_path(FAR, CENTER), [fence])

    assert ev.store.get("truck-1", fence.id).last_known is Containment.INSIDE


def test_transition_carries_point_details():
    ev = GeofenceEvaluator()
    fence = make_fence(fence_id=7)
    path = make_path(FAR, CENTER)

    ev.evaluate("truck-1", path[0], [fence])
    (t,) = ev.evaluate("truck-1", path[1], [fence])

    assert t.fence_id == 7
    assert t.vehicle_id == "truck-1"
    assert (t.lat, t.lon) == CENTER
    assert t.occurred_at == path[1].timestamp
    assert t.to_dict()["kind"] == "ENTRY"


# ---------------------------------------------------------------------------
# Multiple fences and vehicles
# ---------------------------------------------------------------------------


def test_each_fence_tracked_independently():
    ev = GeofenceEvaluator()
    near = make_fence(fence_id=1)
    wide = make_fence(fence_id=2, radius_meters=5_000.0)

    ev.evaluate("truck-1", make_point(FAR), [near, wide])
    transitions = ev.evaluate("truck-1", make_point(CENTER, 10), [near, wide])

    # FAR was already inside the wide fence, so only the near one fires
    assert [(t.fence_id, t.kind) for t in transitions] == [(1, TransitionKind.ENTRY)]


def test_vehicles_tracked_independently():
    ev = GeofenceEvaluator()
    fence = make_fence()

    ev.evaluate("truck-1", make_point(FAR, vehicle_id="truck-1"), [fence])
    assert ev.evaluate("truck-2", make_point(CENTER, vehicle_id="truck-2"), [fence]) == []
    (t,) = ev.evaluate("truck-1", make_point(CENTER, 10, vehicle_id="truck-1"), [fence])
    assert t.vehicle_id == "truck-1"


def test_inactive_fence_is_ignored():
    ev = GeofenceEvaluator()
    fence = make_fence(active=False)

    assert replay(ev, "truck-1", make_path(FAR, CENTER, FAR), [fence]) == []
    assert ev.store.get("truck-1", fence.id) is None


def test_reactivated_fence_starts_from_unknown():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.BOTH)
    ev.evaluate("truck-1", make_point(CENTER), [fence])

    # deactivated while inside; the vehicle then parks outside
    disabled = make_fence(alert_mode=AlertMode.BOTH, active=False)
    ev.evaluate("truck-1", make_point(FAR, 10), [disabled])
    assert ev.store.get("truck-1", fence.id) is None

    assert ev.evaluate("truck-1", make_point(FAR, 20), [fence]) == []
    assert ev.store.get("truck-1", fence.id).last_known is Containment.OUTSIDE


def test_forget_fence_drops_state_for_every_vehicle():
    ev = GeofenceEvaluator()
    fence = make_fence(alert_mode=AlertMode.BOTH)
    ev.evaluate("truck-1", make_point(CENTER, vehicle_id="truck-1"), [fence])
    ev.evaluate("truck-2", make_point(CENTER, vehicle_id="truck-2"), [fence])

    assert ev.forget_fence(fence.id) == 2
    assert ev.evaluate("truck-1", make_point(FAR, 10), [fence]) == []
    assert ev.states_for_vehicle("truck-2") == []


# ---------------------------------------------------------------------------
# Commit hook
# ---------------------------------------------------------------------------


def test_failed_commit_hook_leaves_state_untouched():
    ev = GeofenceEvaluator()
    fence = make_fence()
    ev.evaluate("truck-1", make_point(FAR), [fence])

    def fail(transitions):
        raise OSError("disk full")

    with pytest.raises(OSError):
        ev.evaluate("truck-1", make_point(CENTER, 10), [fence], before_commit=fail)
    assert ev.store.get("truck-1", fence.id).last_known is Containment.OUTSIDE

    seen: list = []
    (t,) = ev.evaluate("truck-1", make_point(CENTER, 20), [fence], before_commit=seen.extend)

    assert t.kind is TransitionKind.ENTRY
    assert seen == [t]
    assert ev.store.get("truck-1", fence.id).last_known is Containment.INSIDE


def test_commit_hook_not_called_without_transitions():
    ev = GeofenceEvaluator()
    fence = make_fence()
    calls: list = []

    replay(ev, "truck-1", make_path(FAR, FAR), [fence])
    ev.evaluate("truck-1", make_point(FAR, 30), [fence], before_commit=calls.append)

    assert calls == []
    assert ev.store.get("truck-1", fence.id).evaluated_at == T0 + timedelta(seconds=30)


# ---------------------------------------------------------------------------
# Bad input
# ---------------------------------------------------------------------------


def test_invalid_fence_is_skipped_and_logged(caplog):
    ev = GeofenceEvaluator()
    broken = make_fence(fence_id=1, radius_meters=0.0)
    good = make_fence(fence_id=2)

    ev.evaluate("truck-1", make_point(FAR), [broken, good])
    transitions = ev.evaluate("truck-1", make_point(CENTER, 10), [broken, good])

    assert [t.fence_id for t in transitions] == [2]
    assert "InvalidGeofenceConfig" in caplog.text
    assert ev.store.get("truck-1", broken.id) is None


def test_fence_without_center_is_skipped():
    ev = GeofenceEvaluator()
    fence = make_fence(center_lat=None)

    assert replay(ev, "truck-1", make_path(FAR, CENTER), [fence]) == []


def test_point_without_position_is_skipped(caplog):
    ev = GeofenceEvaluator()
    fence = make_fence()

    ev.evaluate("truck-1", make_point(FAR), [fence])
    assert ev.evaluate("truck-1", make_point(None, 10), [fence]) == []

    assert ev.store.get("truck-1", fence.id).last_known is Containment.OUTSIDE
    assert "no coordinates" in caplog.text


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_pings_for_one_vehicle_fire_one_entry():
    ev = GeofenceEvaluator()
    fence = make_fence()
    ev.evaluate("truck-1", make_point(FAR), [fence])

    results: list = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def ping(i: int) -> None:
        barrier.wait()
        fired = ev.evaluate("truck-1", make_point(CENTER, 10 + i), [fence])
        with results_lock:
            results.extend(fired)

    threads = [threading.Thread(target=ping, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert [t.kind for t in results] == [TransitionKind.ENTRY]


def test_concurrent_vehicles_each_get_their_entry():
    ev = GeofenceEvaluator()
    fence = make_fence()
    vehicles = [f"truck-{i}" for i in range(6)]

    def drive(vid: str) -> list:
        return replay(ev, vid, make_path(FAR, CENTER, FAR, vehicle_id=vid), [fence])

    out: dict[str, list] = {}

    def run(vid: str) -> None:
        out[vid] = drive(vid)

    threads = [threading.Thread(target=run, args=(v,)) for v in vehicles]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for vid in vehicles:
        assert [t.kind for t in out[vid]] == [TransitionKind.ENTRY, TransitionKind.EXIT]


@pytest.mark.parametrize("mode", ["entry", "Exit", "BOTH"])
def test_alert_mode_parse_is_case_insensitive(mode):
    assert AlertMode.parse(mode).value == mode.upper()


def test_alert_mode_parse_rejects_unknown():
    with pytest.raises(ValueError, match="unknown alert mode"):
        AlertMode.parse("sideways")
