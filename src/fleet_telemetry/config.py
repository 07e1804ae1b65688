"""Analysis configuration: bundling, overriding, and loading.

All values are resolved once into frozen objects and passed to the
detector and aggregator at construction, so a fleet or region can run with
its own tuning without touching module state.

Sources, later ones winning:

1. The dataclass defaults.
2. A JSON file with optional ``detector`` and ``scoring`` sections::

       {
         "detector": {"overspeed_threshold": 80},
         "scoring": {"weights": {"OVERSPEED": 6.0}, "risk_multipliers": {"HIGH": 2.5}}
       }

3. Environment variables, read through :class:`FleetSettings`:

   - ``FLEET_<DETECTOR FIELD>``, e.g. ``FLEET_OVERSPEED_THRESHOLD=80``
   - ``FLEET_WEIGHT_<TYPE>``, e.g. ``FLEET_WEIGHT_FATIGUE=12``
   - ``FLEET_RISK_<LEVEL>``, e.g. ``FLEET_RISK_CRITICAL=4``

``.env`` files are not read here; entry points call ``load_dotenv()`` first.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from fleet_telemetry.behavior.config import DetectorConfig
from fleet_telemetry.behavior.models import BehaviorType, RiskLevel
from fleet_telemetry.errors import ConfigError
from fleet_telemetry.scoring.config import ScoringConfig

_logger = logging.getLogger(__name__)

ENV_PREFIX = "FLEET_"

_DETECTOR_FIELDS = {f.name for f in dataclasses.fields(DetectorConfig)}


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything the analysis core is tuned by."""

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def with_overrides(self, **overrides) -> AnalysisConfig:
        """Return a copy with detector fields and/or scoring tables replaced.

        ``weights`` and ``risk_multipliers`` are merged into the current
        tables; every other keyword must name a :class:`DetectorConfig` field.
        """
        weights = overrides.pop("weights", None)
        multipliers = overrides.pop("risk_multipliers", None)

        unknown = set(overrides) - _DETECTOR_FIELDS
        if unknown:
            raise ConfigError(f"unknown config field(s): {', '.join(sorted(unknown))}")

        detector = dataclasses.replace(self.detector, **overrides) if overrides else self.detector
        scoring = self.scoring
        if weights is not None or multipliers is not None:
            scoring = ScoringConfig(
                weights={**self.scoring.weights, **_upper_keys(weights)},
                risk_multipliers={**self.scoring.risk_multipliers, **_upper_keys(multipliers)},
            )
        return AnalysisConfig(detector=detector, scoring=scoring)


def _upper_keys(table: Mapping | None) -> dict:
    # "overspeed" and BehaviorType.OVERSPEED must land on the same key
    if not table:
        return {}
    out = {}
    for k, v in table.items():
        key = k if isinstance(k, (BehaviorType, RiskLevel)) else str(k).upper()
        out[key] = v
    return out


# ---------------------------------------------------------------------------
# Settings sources
# ---------------------------------------------------------------------------

class FleetSettings(BaseSettings):
    """Flat, typed view of every tunable value.

    Unset fields stay ``None`` and leave the dataclass default in place.
    Keyword arguments (the JSON file) rank below ``FLEET_*`` variables.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=None, case_sensitive=False)

    # Detector
    rapid_accel_threshold: float | None = Field(default=None, gt=0)
    rapid_brake_threshold: float | None = Field(default=None, gt=0)
    overspeed_threshold: float | None = Field(default=None, gt=0)
    fatigue_threshold_minutes: int | None = Field(default=None, gt=0)
    sharp_turn_enabled: bool | None = None
    sharp_turn_rate_deg_s: float | None = Field(default=None, gt=0)
    sharp_turn_min_speed_kmh: float | None = Field(default=None, ge=0)
    idle_detection_enabled: bool | None = None
    idle_speed_kmh: float | None = Field(default=None, ge=0)
    idle_threshold_seconds: int | None = Field(default=None, gt=0)

    # Scoring weights, one per BehaviorType
    weight_rapid_accel: float | None = Field(default=None, ge=0)
    weight_rapid_brake: float | None = Field(default=None, ge=0)
    weight_overspeed: float | None = Field(default=None, ge=0)
    weight_fatigue: float | None = Field(default=None, ge=0)
    weight_sharp_turn: float | None = Field(default=None, ge=0)
    weight_idle_long: float | None = Field(default=None, ge=0)

    # Risk multipliers, one per RiskLevel
    risk_low: float | None = Field(default=None, ge=0)
    risk_medium: float | None = Field(default=None, ge=0)
    risk_high: float | None = Field(default=None, ge=0)
    risk_critical: float | None = Field(default=None, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings

    def overrides(self) -> dict:
        """Return the set values as :meth:`AnalysisConfig.with_overrides` keywords."""
        values = self.model_dump(exclude_none=True)
        out: dict = {k: v for k, v in values.items() if k in _DETECTOR_FIELDS}

        weights = {t: values[f"weight_{t.value.lower()}"] for t in BehaviorType
                   if f"weight_{t.value.lower()}" in values}
        multipliers = {r: values[f"risk_{r.value.lower()}"] for r in RiskLevel
                       if f"risk_{r.value.lower()}" in values}
        if weights:
            out["weights"] = weights
        if multipliers:
            out["risk_multipliers"] = multipliers
        return out


def _file_values(path) -> dict:
    """Flatten a JSON config file into :class:`FleetSettings` keywords."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")

    detector = data.get("detector") or {}
    scoring = data.get("scoring") or {}
    if not isinstance(detector, dict) or not isinstance(scoring, dict):
        raise ConfigError(f"config file {path}: detector and scoring must be objects")

    values = dict(detector)
    for k, v in (scoring.get("weights") or {}).items():
        values[f"weight_{str(k).lower()}"] = v
    for k, v in (scoring.get("risk_multipliers") or {}).items():
        values[f"risk_{str(k).lower()}"] = v
    return values


def load_config(path: str | os.PathLike | None = None) -> AnalysisConfig:
    """Build an :class:`AnalysisConfig` from defaults, *path*, and ``FLEET_*`` variables.

    Raises :class:`ConfigError` on a malformed file, an unknown key or a
    bad value.
    """
    values = _file_values(path) if path is not None else {}
    try:
        settings = FleetSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid analysis config: {exc}") from exc

    overrides = settings.overrides()
    if path is not None:
        _logger.info("Loaded analysis config from %s", path)
    if overrides:
        _logger.info("Applied %d analysis config override(s)", len(overrides))
    return AnalysisConfig().with_overrides(**overrides)


__all__ = [
    "ENV_PREFIX",
    "AnalysisConfig",
    "DetectorConfig",
    "FleetSettings",
    "ScoringConfig",
    "load_config",
]
