"""Interfaces of the collaborators the analysis core is wired to.

The core never calls these itself; the services in
:mod:`fleet_telemetry.web.service` do.  :class:`~fleet_telemetry.storage.SqliteFleetStore`
implements all four store protocols; tests pass in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from fleet_telemetry.behavior.models import BehaviorEvent
from fleet_telemetry.geofence.models import AlertTransition, ContainmentState, Geofence
from fleet_telemetry.track.models import TrackPoint


class TrackStore(Protocol):
    def get_track(self, vehicle_id: str, start: datetime, end: datetime) -> list[TrackPoint]:
        """Points for *vehicle_id* in ``[start, end]``, ascending by timestamp."""
        ...


class GeofenceStore(Protocol):
    def active_geofences(self) -> list[Geofence]:
        ...

    def get_geofence(self, fence_id: int) -> Geofence | None:
        ...

    def save_geofence(self, fence: Geofence) -> None:
        """Insert *fence*, or replace the stored fence with the same id."""
        ...

    def set_geofence_active(self, fence_id: int, active: bool) -> bool:
        """Flip the active flag; return False if *fence_id* does not exist."""
        ...


class AlertStore(Protocol):
    def save_transitions(self, transitions: Sequence[AlertTransition]) -> list[int]:
        """Persist transitions as unhandled alerts; return their row ids."""
        ...


class BehaviorStore(Protocol):
    def save_events(self, events: Sequence[BehaviorEvent]) -> list[int]:
        ...

    def events_between(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[BehaviorEvent]:
        ...


class ContainmentStore(Protocol):
    def get(self, vehicle_id: str, fence_id: int) -> ContainmentState | None:
        ...

    def put(self, state: ContainmentState) -> None:
        ...

    def discard(self, vehicle_id: str, fence_id: int) -> None:
        ...

    def forget_fence(self, fence_id: int) -> int:
        ...

    def states_for_vehicle(self, vehicle_id: str) -> list[ContainmentState]:
        ...
