"""Driving score weight and risk-multiplier tables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from fleet_telemetry.behavior.models import BehaviorType, RiskLevel
from fleet_telemetry.errors import ConfigError

DEFAULT_WEIGHTS: Mapping[BehaviorType, float] = MappingProxyType({
    BehaviorType.RAPID_ACCEL: 2.0,
    BehaviorType.RAPID_BRAKE: 3.0,
    BehaviorType.OVERSPEED: 5.0,
    BehaviorType.FATIGUE: 10.0,
    BehaviorType.SHARP_TURN: 2.0,
    BehaviorType.IDLE_LONG: 1.0,
})

DEFAULT_RISK_MULTIPLIERS: Mapping[RiskLevel, float] = MappingProxyType({
    RiskLevel.LOW: 0.5,
    RiskLevel.MEDIUM: 1.0,
    RiskLevel.HIGH: 2.0,
    RiskLevel.CRITICAL: 3.0,
})


def _freeze_table(raw: Mapping, enum_cls, defaults: Mapping, what: str) -> Mapping:
    """Merge *raw* over *defaults*, validating keys and values; return read-only."""
    table = dict(defaults)
    for key, value in raw.items():
        try:
            member = key if isinstance(key, enum_cls) else enum_cls(str(key).upper())
        except ValueError:
            raise ConfigError(f"unknown {what} key: {key!r}") from None
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{what}[{member.value}] is not a number: {value!r}") from None
        if number < 0:
            raise ConfigError(f"{what}[{member.value}] must be >= 0, got {number}")
        table[member] = number
    return MappingProxyType(table)


@dataclass(frozen=True)
class ScoringConfig:
    """Per-type weights and per-risk multipliers for the driving score.

    Partial tables are merged over the defaults, so
    ``ScoringConfig(weights={"FATIGUE": 12})`` changes one weight only.
    Keys may be enum members or their string values.
    """

    weights: Mapping[BehaviorType, float] = field(default_factory=lambda: DEFAULT_WEIGHTS)
    risk_multipliers: Mapping[RiskLevel, float] = field(
        default_factory=lambda: DEFAULT_RISK_MULTIPLIERS
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "weights",
            _freeze_table(self.weights, BehaviorType, DEFAULT_WEIGHTS, "weights"),
        )
        object.__setattr__(
            self,
            "risk_multipliers",
            _freeze_table(
                self.risk_multipliers, RiskLevel, DEFAULT_RISK_MULTIPLIERS, "risk_multipliers"
            ),
        )
