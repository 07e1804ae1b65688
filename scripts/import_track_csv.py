"""Load track points from a CSV file into the SQLite store.

Usage:
  python scripts/import_track_csv.py --db fleet.db --csv tracks.csv [--vehicle truck-07]

Optionally replays every point through the geofences stored in the database
(--check-fences) and records the resulting ENTRY/EXIT alerts.
"""

from __future__ import annotations

import argparse
import logging
import sys

from fleet_telemetry.geofence.evaluator import GeofenceEvaluator
from fleet_telemetry.storage import SqliteFleetStore
from fleet_telemetry.track.csv_io import iter_track_points
from fleet_telemetry.web.service import GeofenceMonitor


def main() -> None:
    ap = argparse.ArgumentParser(description="Import track points from CSV")
    ap.add_argument("--db", required=True, help="SQLite database path")
    ap.add_argument("--csv", required=True, help="CSV with vehicle_id,timestamp,latitude,...")
    ap.add_argument("--vehicle", default=None, help="Only import this vehicle")
    ap.add_argument("--check-fences", action="store_true", help="Evaluate geofences per point")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    storage = SqliteFleetStore(args.db)
    monitor = GeofenceMonitor(storage, storage, GeofenceEvaluator()) if args.check_fences else None
    imported = alerts = pending = 0
    try:
        for point in iter_track_points(args.csv, args.vehicle):
            storage.save_track_point(point)
            imported += 1
            if monitor is not None:
                alerts += len(monitor.process_position(point))
        if monitor is not None:
            pending = storage.unhandled_alert_count()
    except KeyError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        storage.close()

    print(f"[OK] Imported {imported} point(s)")
    if monitor is not None:
        print(f"     Raised {alerts} geofence alert(s), {pending} unhandled in total")


if __name__ == "__main__":
    main()
