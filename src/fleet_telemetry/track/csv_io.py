"""CSV import of track points.

Expected columns: ``vehicle_id, timestamp, latitude, longitude, speed_kmh,
heading_deg``.  ``timestamp`` is ISO-8601.  Blank numeric cells become
``None``; the detector and evaluator already tolerate missing values.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from fleet_telemetry.track.models import TrackPoint

_logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("vehicle_id", "timestamp")


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def _timestamp(value: str | None) -> datetime:
    if value is None or not value.strip():
        raise ValueError("row has no timestamp")
    return datetime.fromisoformat(value.strip())


def iter_track_points(csv_path: str | Path, vehicle_id: str | None = None) -> Iterator[TrackPoint]:
    """Yield :class:`TrackPoint` rows from *csv_path* in file order.

    Args:
        csv_path: Path to the CSV file.
        vehicle_id: If given, rows for other vehicles are skipped.

    Rows with a missing or unparseable timestamp, or an unparseable number,
    are skipped with a warning.
    Raises ``KeyError`` if a required column is missing.
    """
    with Path(csv_path).open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return
        missing = [c for c in REQUIRED_COLUMNS if c not in reader.fieldnames]
        if missing:
            raise KeyError(f"CSV is missing column(s) {missing}; found {reader.fieldnames}")

        for line_no, row in enumerate(reader, start=2):
            if vehicle_id is not None and row["vehicle_id"] != vehicle_id:
                continue
            try:
                yield TrackPoint(
                    vehicle_id=row["vehicle_id"],
                    timestamp=_timestamp(row["timestamp"]),
                    latitude=_optional_float(row.get("latitude")),
                    longitude=_optional_float(row.get("longitude")),
                    speed_kmh=_optional_float(row.get("speed_kmh")),
                    heading_deg=_optional_float(row.get("heading_deg")),
                )
            except (ValueError, TypeError) as exc:
                _logger.warning("Skipping %s line %d: %s", csv_path, line_no, exc)
