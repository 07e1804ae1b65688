"""Services that wire the stores to the analysis core.

Store failures (``sqlite3.Error``, ``OSError``) surface as
:class:`~fleet_telemetry.errors.AnalysisUnavailable`; nothing here retries.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from fleet_telemetry.behavior.detector import BehaviorDetector
from fleet_telemetry.behavior.models import BehaviorEvent
from fleet_telemetry.config import AnalysisConfig
from fleet_telemetry.errors import AnalysisUnavailable
from fleet_telemetry.geofence.evaluator import GeofenceEvaluator
from fleet_telemetry.geofence.geomath import validate_fence
from fleet_telemetry.geofence.models import AlertTransition, ContainmentState, Geofence
from fleet_telemetry.ports import AlertStore, BehaviorStore, GeofenceStore, TrackStore
from fleet_telemetry.scoring.aggregator import ScoreAggregator
from fleet_telemetry.scoring.models import DrivingScoreReport
from fleet_telemetry.track.models import TrackPoint, TripStatistics
from fleet_telemetry.track.statistics import summarize_track

_logger = logging.getLogger(__name__)


@contextmanager
def _store_call(what: str) -> Iterator[None]:
    try:
        yield
    except (sqlite3.Error, OSError) as exc:
        _logger.error("%s failed: %s", what, exc)
        raise AnalysisUnavailable(f"{what} failed: {exc}") from exc


@dataclass
class AnalysisResult:
    """Output of :meth:`BehaviorAnalysisService.analyze`."""

    events: list[BehaviorEvent]
    report: DrivingScoreReport
    stats: TripStatistics | None
    saved_ids: list[int]


class GeofenceMonitor:
    """Evaluate position pings against the active fences and persist transitions.

    Parameters
    ----------
    fences:
        Supplies the active geofences on each call.
    alerts:
        Receives the transitions as unhandled alerts.
    evaluator:
        Must outlive individual calls: it owns the containment state.
    """

    def __init__(
        self,
        fences: GeofenceStore,
        alerts: AlertStore,
        evaluator: GeofenceEvaluator,
    ) -> None:
        self._fences = fences
        self._alerts = alerts
        self._evaluator = evaluator

    def process_position(self, point: TrackPoint) -> list[AlertTransition]:
        """Return the transitions for *point*, after persisting them.

        The containment state only advances once the alerts are saved, so a
        ping whose alerts could not be stored can be resent and fires again.
        """
        with _store_call("loading active geofences"):
            fences = self._fences.active_geofences()

        return self._evaluator.evaluate(
            point.vehicle_id, point, fences, before_commit=self._save_alerts
        )

    def save_fence(self, fence: Geofence) -> None:
        """Create or replace *fence*; raises InvalidGeofenceConfig if unusable.

        A replaced fence may have moved, so its containment state is dropped.
        """
        validate_fence(fence)
        with _store_call("saving geofence"):
            self._fences.save_geofence(fence)
        self._evaluator.forget_fence(fence.id)

    def get_fence(self, fence_id: int) -> Geofence | None:
        with _store_call("loading geofence"):
            return self._fences.get_geofence(fence_id)

    def set_fence_active(self, fence_id: int, active: bool) -> bool:
        """Activate or deactivate a fence; return False if it does not exist.

        Deactivating drops the fence's containment state, so a later
        reactivation starts from UNKNOWN instead of the pre-deactivation state.
        """
        with _store_call("updating geofence"):
            found = self._fences.set_geofence_active(fence_id, active)
        if found and not active:
            self._evaluator.forget_fence(fence_id)
        _logger.info("Fence %s set active=%s (found=%s)", fence_id, active, found)
        return found

    def containment(self, vehicle_id: str) -> list[ContainmentState]:
        """Current containment state of *vehicle_id* per evaluated fence."""
        return sorted(self._evaluator.states_for_vehicle(vehicle_id), key=lambda s: s.fence_id)

    def _save_alerts(self, transitions: list[AlertTransition]) -> None:
        with _store_call("saving fence alerts"):
            self._alerts.save_transitions(transitions)


class BehaviorAnalysisService:
    """Detect, persist and score driving behaviour for a time window.

    Parameters
    ----------
    tracks:
        Source of ordered track points.
    behaviors:
        Sink for detected events and source for re-scoring.
    config:
        Detector thresholds and scoring tables; defaults to
        :class:`~fleet_telemetry.config.AnalysisConfig`.
    """

    def __init__(
        self,
        tracks: TrackStore,
        behaviors: BehaviorStore,
        config: AnalysisConfig | None = None,
    ) -> None:
        cfg = config or AnalysisConfig()
        self._tracks = tracks
        self._behaviors = behaviors
        self._detector = BehaviorDetector(cfg.detector)
        self._aggregator = ScoreAggregator(cfg.scoring)

    def analyze(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        persist: bool = True,
        cancel: threading.Event | None = None,
    ) -> AnalysisResult:
        """Run detection over ``[start, end]`` and score the result.

        Events are only persisted once detection has completed, so a
        cancelled run leaves nothing behind.
        """
        if end < start:
            raise ValueError(f"window end {end} is before start {start}")

        with _store_call("loading track"):
            points = self._tracks.get_track(vehicle_id, start, end)

        events = self._detector.detect(vehicle_id, points, cancel=cancel)
        report = self._aggregator.score(events, start, end, vehicle_id=vehicle_id)
        stats = summarize_track(vehicle_id, points)

        saved_ids: list[int] = []
        if persist and events:
            with _store_call("saving behaviour events"):
                saved_ids = self._behaviors.save_events(events)

        _logger.info(
            "Analysed %s: %d point(s), %d event(s), score %d (%s)",
            vehicle_id,
            len(points),
            len(events),
            report.score,
            report.grade.value,
        )
        return AnalysisResult(events=events, report=report, stats=stats, saved_ids=saved_ids)

    def score(self, vehicle_id: str, start: datetime, end: datetime) -> DrivingScoreReport:
        """Score the events already stored for ``[start, end]``."""
        if end < start:
            raise ValueError(f"window end {end} is before start {start}")
        with _store_call("loading behaviour events"):
            events = self._behaviors.events_between(vehicle_id, start, end)
        return self._aggregator.score(events, start, end, vehicle_id=vehicle_id)
