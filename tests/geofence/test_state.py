"""Tests for the in-memory containment store and keyed lock."""

from __future__ import annotations

import gc
import threading
from datetime import datetime

from fleet_telemetry.geofence.models import Containment, ContainmentState
from fleet_telemetry.geofence.state import InMemoryContainmentStore, KeyedLock

T0 = datetime(2026, 3, 1, 8, 0, 0)


def make_state(vehicle_id="truck-1", fence_id=1, last_known=Containment.INSIDE) -> ContainmentState:
    return ContainmentState(vehicle_id, fence_id, last_known, T0)


def test_get_missing_returns_none():
    assert InMemoryContainmentStore().get("truck-1", 1) is None


def test_put_overwrites():
    store = InMemoryContainmentStore()
    store.put(make_state(last_known=Containment.OUTSIDE))
    store.put(make_state(last_known=Containment.INSIDE))

    assert store.get("truck-1", 1).last_known is Containment.INSIDE
    assert len(store) == 1


def test_states_for_vehicle_sorted_by_fence():
    store = InMemoryContainmentStore()
    store.put(make_state(fence_id=3))
    store.put(make_state(fence_id=1))
    store.put(make_state(vehicle_id="truck-2", fence_id=2))

    assert [s.fence_id for s in store.states_for_vehicle("truck-1")] == [1, 3]


def test_forget_fence_drops_all_vehicles():
    store = InMemoryContainmentStore()
    store.put(make_state(vehicle_id="truck-1", fence_id=1))
    store.put(make_state(vehicle_id="truck-2", fence_id=1))
    store.put(make_state(vehicle_id="truck-1", fence_id=2))

    assert store.forget_fence(1) == 2
    assert len(store) == 1
    assert store.get("truck-2", 1) is None


def test_discard_drops_one_pair():
    store = InMemoryContainmentStore()
    store.put(make_state(fence_id=1))
    store.put(make_state(fence_id=2))

    store.discard("truck-1", 1)
    store.discard("truck-1", 9)

    assert store.get("truck-1", 1) is None
    assert store.get("truck-1", 2) is not None


def test_keyed_lock_releases_idle_keys():
    lock = KeyedLock()
    for n in range(100):
        with lock.hold(f"truck-{n}"):
            assert len(lock) == 1

    gc.collect()
    assert len(lock) == 0


def test_keyed_lock_does_not_block_other_keys():
    lock = KeyedLock()
    acquired = threading.Event()

    def other() -> None:
        with lock.hold("truck-2"):
            acquired.set()

    with lock.hold("truck-1"):
        t = threading.Thread(target=other)
        t.start()
        assert acquired.wait(timeout=2.0)
        t.join()


def test_keyed_lock_excludes_same_key():
    lock = KeyedLock()
    acquired = threading.Event()

    def same() -> None:
        with lock.hold("truck-1"):
            acquired.set()

    with lock.hold("truck-1"):
        t = threading.Thread(target=same)
        t.start()
        assert not acquired.wait(timeout=0.2)
    t.join()
    assert acquired.is_set()
