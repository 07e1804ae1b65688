"""Geofence transition detection.

Turns a stream of position pings into ENTRY/EXIT transitions.  An alert
fires only when the stored containment for a (vehicle, fence) pair changes;
a vehicle that stays inside a fence across many pings produces one ENTRY,
not one alert per ping.

Transition table (``prior`` → ``inside`` → event):

::

    UNKNOWN  → any   → none (state is only recorded)
    OUTSIDE  → True  → ENTRY  if mode in {ENTRY, BOTH}
    INSIDE   → False → EXIT   if mode in {EXIT, BOTH}
    otherwise        → none

An inactive fence has no state: seeing one drops whatever was stored for
the vehicle, so a reactivated fence starts again from UNKNOWN.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from fleet_telemetry.errors import InvalidGeofenceConfig
from fleet_telemetry.geofence.geomath import is_inside
from fleet_telemetry.geofence.models import (
    AlertTransition,
    Containment,
    ContainmentState,
    Geofence,
    TransitionKind,
)
from fleet_telemetry.geofence.state import InMemoryContainmentStore, KeyedLock
from fleet_telemetry.track.models import TrackPoint

_logger = logging.getLogger(__name__)


class GeofenceEvaluator:
    """Evaluate position pings against geofences, firing on state changes.

    Args:
        store: Containment state store (see
            :class:`~fleet_telemetry.ports.ContainmentStore`).  Defaults to an
            :class:`InMemoryContainmentStore`.

    Evaluations for the same vehicle are serialized; different vehicles are
    evaluated in parallel.
    """

    def __init__(self, store=None) -> None:
        self._store = store if store is not None else InMemoryContainmentStore()
        self._vehicle_locks = KeyedLock()

    @property
    def store(self):
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(
        self,
        vehicle_id: str,
        point: TrackPoint,
        fences: Iterable[Geofence],
        before_commit: Callable[[list[AlertTransition]], object] | None = None,
    ) -> list[AlertTransition]:
        """Return the transitions caused by *point* across all active *fences*.

        Args:
            before_commit: Called with the transitions (only if there are
                any) after they are computed and before the new containment
                states are stored, still under the vehicle's lock.  If it
                raises, no state changes and the exception propagates, so
                the same ping can be retried.
        """
        if not point.has_position:
            _logger.warning(
                "Skipping geofence evaluation for %s at %s: point has no coordinates",
                vehicle_id,
                point.timestamp,
            )
            return []

        transitions: list[AlertTransition] = []
        pending: list[ContainmentState] = []
        with self._vehicle_locks.hold(vehicle_id):
            for fence in fences:
                if not fence.active:
                    self._store.discard(vehicle_id, fence.id)
                    continue
                try:
                    inside = is_inside(point, fence)
                except InvalidGeofenceConfig as exc:
                    _logger.warning("InvalidGeofenceConfig: %s", exc)
                    continue

                state, transition = self._apply(vehicle_id, point, fence, inside)
                pending.append(state)
                if transition is not None:
                    transitions.append(transition)

            if transitions and before_commit is not None:
                before_commit(transitions)
            for state in pending:
                self._store.put(state)

        for t in transitions:
            _logger.info("Vehicle %s %s fence %s", vehicle_id, t.kind.value, t.fence_id)
        return transitions

    def forget_fence(self, fence_id: int) -> int:
        """Drop all containment state for *fence_id*; return how many were dropped."""
        dropped = self._store.forget_fence(fence_id)
        _logger.debug("Forgot %d containment state(s) for fence %s", dropped, fence_id)
        return dropped

    def states_for_vehicle(self, vehicle_id: str) -> Sequence[ContainmentState]:
        return self._store.states_for_vehicle(vehicle_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _apply(
        self,
        vehicle_id: str,
        point: TrackPoint,
        fence: Geofence,
        inside: bool,
    ) -> tuple[ContainmentState, AlertTransition | None]:
        state = self._store.get(vehicle_id, fence.id)
        prior = state.last_known if state is not None else Containment.UNKNOWN

        kind = None
        if prior is Containment.OUTSIDE and inside and fence.alert_mode.alerts_on_entry:
            kind = TransitionKind.ENTRY
        elif prior is Containment.INSIDE and not inside and fence.alert_mode.alerts_on_exit:
            kind = TransitionKind.EXIT

        new_state = ContainmentState(
            vehicle_id=vehicle_id,
            fence_id=fence.id,
            last_known=Containment.INSIDE if inside else Containment.OUTSIDE,
            evaluated_at=point.timestamp,
        )
        if kind is None:
            return new_state, None

        return new_state, AlertTransition(
            fence_id=fence.id,
            vehicle_id=vehicle_id,
            lat=point.latitude,
            lon=point.longitude,
            kind=kind,
            occurred_at=point.timestamp,
        )
