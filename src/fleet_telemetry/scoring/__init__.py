"""Driving score aggregation and report output."""

from fleet_telemetry.scoring.aggregator import ScoreAggregator
from fleet_telemetry.scoring.config import (
    DEFAULT_RISK_MULTIPLIERS,
    DEFAULT_WEIGHTS,
    ScoringConfig,
)
from fleet_telemetry.scoring.formatter import MarkdownFormatter
from fleet_telemetry.scoring.models import DrivingScoreReport, Grade

__all__ = [
    "DEFAULT_RISK_MULTIPLIERS",
    "DEFAULT_WEIGHTS",
    "DrivingScoreReport",
    "Grade",
    "MarkdownFormatter",
    "ScoreAggregator",
    "ScoringConfig",
]
