"""Kinematic anomaly detection over an ordered trajectory.

Per consecutive pair of points:
  - Rapid acceleration / rapid braking from the speed delta
  - Overspeed against a fixed limit, graded by how far over
  - Sharp turns from the heading rate (opt-in)

Across the whole window:
  - Long idling runs (opt-in)
  - Fatigue when the window spans too long
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from fleet_telemetry.behavior.config import DetectorConfig
from fleet_telemetry.behavior.models import BehaviorEvent, BehaviorType, RiskLevel
from fleet_telemetry.errors import AnalysisCancelled
from fleet_telemetry.track.models import TrackPoint

_logger = logging.getLogger(__name__)

KMH_PER_MS = 3.6

# ---------------------------------------------------------------------------
# Math helpers
# ---------------------------------------------------------------------------

def _acceleration_ms2(prev: TrackPoint, cur: TrackPoint, dt_s: float) -> float:
    return ((cur.speed_kmh - prev.speed_kmh) / KMH_PER_MS) / dt_s


def _usable(point: TrackPoint) -> bool:
    return point.speed_kmh is not None and point.has_position


def _heading_delta(h1: float, h2: float) -> float:
    """Signed smallest rotation from *h1* to *h2*, in degrees [-180, 180)."""
    return (h2 - h1 + 180.0) % 360.0 - 180.0


def _overspeed_risk(over_fraction: float) -> RiskLevel:
    if over_fraction > 0.5:
        return RiskLevel.CRITICAL
    if over_fraction > 0.3:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------

class BehaviorDetector:
    """Turn one vehicle's trajectory into a list of :class:`BehaviorEvent`.

    Args:
        config: Thresholds used when :meth:`detect` is not given its own.

    The detector holds no per-call state and performs no I/O, so a single
    instance may be shared across threads.
    """

    def __init__(self, config: DetectorConfig | None = None) -> None:
        self.config = config or DetectorConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(
        self,
        vehicle_id: str,
        points: Sequence[TrackPoint],
        config: DetectorConfig | None = None,
        cancel: threading.Event | None = None,
    ) -> list[BehaviorEvent]:
        """Return events for *points* in input order, FATIGUE last.

        *points* must be ascending by timestamp.  Unsorted input is not
        re-sorted and gives unspecified results.

        Pairs where either point lacks a speed or a position, or where the
        timestamp does not advance, are skipped without producing events.

        Args:
            vehicle_id: Vehicle the events are attributed to.
            points: Ordered track points.
            config: Overrides the detector's own thresholds for this call.
            cancel: Checked between pairs; when set, :class:`AnalysisCancelled`
                is raised and nothing is returned.
        """
        cfg = config or self.config
        if len(points) < 2:
            return []

        events: list[BehaviorEvent] = []
        idle_run: list[TrackPoint] = []
        self._track_idle(vehicle_id, points[0], idle_run, events, cfg)

        for prev, cur in zip(points, points[1:]):
            if cancel is not None and cancel.is_set():
                raise AnalysisCancelled(f"behaviour detection for {vehicle_id} cancelled")

            self._track_idle(vehicle_id, cur, idle_run, events, cfg)

            if not _usable(prev) or not _usable(cur):
                continue
            dt_s = (cur.timestamp - prev.timestamp).total_seconds()
            if dt_s <= 0:
                continue

            events.extend(self._check_pair(vehicle_id, prev, cur, dt_s, cfg))

        idle_event = self._close_idle_run(vehicle_id, idle_run, cfg)
        if idle_event is not None:
            events.append(idle_event)

        fatigue = self._check_fatigue(vehicle_id, points, cfg)
        if fatigue is not None:
            events.append(fatigue)

        _logger.debug("Detected %d behaviour event(s) for %s", len(events), vehicle_id)
        return events

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_pair(
        self,
        vehicle_id: str,
        prev: TrackPoint,
        cur: TrackPoint,
        dt_s: float,
        cfg: DetectorConfig,
    ) -> list[BehaviorEvent]:
        found: list[BehaviorEvent] = []
        accel = _acceleration_ms2(prev, cur, dt_s)

        if accel > cfg.rapid_accel_threshold:
            found.append(self._event(
                vehicle_id, cur, BehaviorType.RAPID_ACCEL, RiskLevel.MEDIUM,
                f"Rapid acceleration: {accel:.1f} m/s²",
                acceleration_ms2=accel,
            ))
        elif accel < -cfg.rapid_brake_threshold:
            found.append(self._event(
                vehicle_id, cur, BehaviorType.RAPID_BRAKE, RiskLevel.HIGH,
                f"Rapid braking: deceleration {abs(accel):.1f} m/s²",
                acceleration_ms2=accel,
            ))

        limit = cfg.overspeed_threshold
        if cur.speed_kmh > limit:
            over = (cur.speed_kmh - limit) / limit
            found.append(self._event(
                vehicle_id, cur, BehaviorType.OVERSPEED, _overspeed_risk(over),
                f"Overspeed: {cur.speed_kmh:.1f} km/h, limit {limit:.1f} km/h",
            ))

        if (
            cfg.sharp_turn_enabled
            and prev.heading_deg is not None
            and cur.heading_deg is not None
            and cur.speed_kmh >= cfg.sharp_turn_min_speed_kmh
        ):
            rate = abs(_heading_delta(prev.heading_deg, cur.heading_deg)) / dt_s
            if rate > cfg.sharp_turn_rate_deg_s:
                found.append(self._event(
                    vehicle_id, cur, BehaviorType.SHARP_TURN, RiskLevel.MEDIUM,
                    f"Sharp turn: {rate:.1f} °/s at {cur.speed_kmh:.1f} km/h",
                ))

        return found

    def _track_idle(
        self,
        vehicle_id: str,
        point: TrackPoint,
        run: list[TrackPoint],
        events: list[BehaviorEvent],
        cfg: DetectorConfig,
    ) -> None:
        """Extend or close the current idle run with *point*.

        Points without a speed or a position neither extend nor break a run.
        """
        if not cfg.idle_detection_enabled or not _usable(point):
            return
        if point.speed_kmh <= cfg.idle_speed_kmh:
            run.append(point)
            return
        event = self._close_idle_run(vehicle_id, run, cfg)
        if event is not None:
            events.append(event)

    def _close_idle_run(
        self,
        vehicle_id: str,
        run: list[TrackPoint],
        cfg: DetectorConfig,
    ) -> BehaviorEvent | None:
        if not run:
            return None
        first, last = run[0], run[-1]
        run.clear()
        idle_s = (last.timestamp - first.timestamp).total_seconds()
        if idle_s < cfg.idle_threshold_seconds:
            return None
        return self._event(
            vehicle_id, last, BehaviorType.IDLE_LONG, RiskLevel.LOW,
            f"Long idle: {int(idle_s)} s stationary",
            duration_seconds=int(idle_s),
        )

    def _check_fatigue(
        self,
        vehicle_id: str,
        points: Sequence[TrackPoint],
        cfg: DetectorConfig,
    ) -> BehaviorEvent | None:
        """One FATIGUE event if the window spans the threshold.

        Rest stops inside the window are not subtracted.
        """
        first, last = points[0], points[-1]
        span_s = (last.timestamp - first.timestamp).total_seconds()
        driving_minutes = int(span_s // 60)
        if driving_minutes < cfg.fatigue_threshold_minutes:
            return None
        return BehaviorEvent(
            vehicle_id=vehicle_id,
            type=BehaviorType.FATIGUE,
            risk_level=RiskLevel.HIGH,
            lat=last.latitude,
            lon=last.longitude,
            event_time=last.timestamp,
            description=f"Fatigue: {driving_minutes} minutes of continuous driving",
            duration_seconds=int(span_s),
        )

    @staticmethod
    def _event(
        vehicle_id: str,
        point: TrackPoint,
        kind: BehaviorType,
        risk: RiskLevel,
        description: str,
        acceleration_ms2: float | None = None,
        duration_seconds: int | None = None,
    ) -> BehaviorEvent:
        return BehaviorEvent(
            vehicle_id=vehicle_id,
            type=kind,
            risk_level=risk,
            lat=point.latitude,
            lon=point.longitude,
            event_time=point.timestamp,
            description=description,
            speed_kmh=point.speed_kmh,
            acceleration_ms2=acceleration_ms2,
            duration_seconds=duration_seconds,
        )
