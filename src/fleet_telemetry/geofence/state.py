"""Containment state storage and the per-vehicle lock used around it."""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager

from fleet_telemetry.geofence.models import ContainmentState


class KeyedLock:
    """A family of mutexes, one per key, created on first use.

    Holding ``lock.hold(key)`` excludes other holders of the same *key* but
    never blocks holders of a different key.  A key's mutex is dropped once
    no thread holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class InMemoryContainmentStore:
    """Thread-safe map of ``(vehicle_id, fence_id)`` → :class:`ContainmentState`.

    Individual calls are atomic; the read → compute → write sequence across
    them is made atomic by the evaluator's per-vehicle lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[tuple[str, int], ContainmentState] = {}

    def get(self, vehicle_id: str, fence_id: int) -> ContainmentState | None:
        with self._lock:
            return self._states.get((vehicle_id, fence_id))

    def put(self, state: ContainmentState) -> None:
        with self._lock:
            self._states[(state.vehicle_id, state.fence_id)] = state

    def discard(self, vehicle_id: str, fence_id: int) -> None:
        with self._lock:
            self._states.pop((vehicle_id, fence_id), None)

    def states_for_vehicle(self, vehicle_id: str) -> list[ContainmentState]:
        """Return all stored states for *vehicle_id*, ordered by fence id."""
        with self._lock:
            found = [s for (v, _), s in self._states.items() if v == vehicle_id]
        return sorted(found, key=lambda s: s.fence_id)

    def forget_fence(self, fence_id: int) -> int:
        """Drop every state for *fence_id*.  Returns the number removed."""
        with self._lock:
            keys = [k for k in self._states if k[1] == fence_id]
            for k in keys:
                del self._states[k]
        return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
