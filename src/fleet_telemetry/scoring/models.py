"""Driving score data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Grade(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

    @classmethod
    def for_score(cls, score: int) -> Grade:
        """``>=90`` Excellent, ``>=80`` Good, ``>=60`` Fair, else Poor."""
        if score >= 90:
            return cls.EXCELLENT
        if score >= 80:
            return cls.GOOD
        if score >= 60:
            return cls.FAIR
        return cls.POOR


@dataclass(frozen=True)
class DrivingScoreReport:
    """Score for one vehicle over one window.  Derived; never persisted here."""

    vehicle_id: str
    window_start: datetime
    window_end: datetime

    score: int
    """Integer in [0, 100]; 100 means no deductions."""

    grade: Grade
    total_events: int
    counts_by_type: dict[str, int] = field(default_factory=dict)
    """Event count keyed by :class:`BehaviorType` value."""

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        return {
            "vehicle_id": self.vehicle_id,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "score": self.score,
            "grade": self.grade.value,
            "total_events": self.total_events,
            "counts_by_type": dict(self.counts_by_type),
        }
