"""Behaviour events → driving score."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from fleet_telemetry.behavior.models import BehaviorEvent
from fleet_telemetry.scoring.config import ScoringConfig
from fleet_telemetry.scoring.models import DrivingScoreReport, Grade

MAX_SCORE = 100


def _round_half_up(x: float) -> int:
    """Round halves up (98.5 → 99); built-in round() gives 98."""
    return math.floor(x + 0.5)


class ScoreAggregator:
    """Combine a window's behaviour events into a :class:`DrivingScoreReport`.

    ``score = round(max(0, 100 - Σ weight[type] × multiplier[risk]))``.
    A type or risk level missing from the tables counts with factor 1.0.

    Args:
        config: Weight and multiplier tables; defaults to :class:`ScoringConfig`.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or ScoringConfig()

    def deduction(self, events: Sequence[BehaviorEvent]) -> float:
        """Total points deducted for *events*."""
        weights = self.config.weights
        multipliers = self.config.risk_multipliers
        return sum(
            weights.get(e.type, 1.0) * multipliers.get(e.risk_level, 1.0) for e in events
        )

    def score(
        self,
        events: Sequence[BehaviorEvent],
        window_start: datetime,
        window_end: datetime,
        vehicle_id: str | None = None,
    ) -> DrivingScoreReport:
        """Build the report for *events* observed in ``[window_start, window_end]``.

        *vehicle_id* defaults to the vehicle of the first event, or ``""``
        for an empty window.
        """
        raw = max(0.0, MAX_SCORE - self.deduction(events))
        score = min(MAX_SCORE, max(0, _round_half_up(raw)))

        counts = Counter(e.type.value for e in events)

        if vehicle_id is None:
            vehicle_id = events[0].vehicle_id if events else ""

        return DrivingScoreReport(
            vehicle_id=vehicle_id,
            window_start=window_start,
            window_end=window_end,
            score=score,
            grade=Grade.for_score(score),
            total_events=len(events),
            counts_by_type=dict(counts),
        )
