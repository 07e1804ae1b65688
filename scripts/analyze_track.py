"""Driving behaviour analysis script: generates a Markdown report from SQLite track data.

Usage:
  python scripts/analyze_track.py \\
      --db fleet.db \\
      --vehicle truck-07 \\
      --start 2026-03-02T06:00:00 \\
      --end 2026-03-02T18:00:00 \\
      --config fleet.json \\
      --output report.md

Thresholds can also be overridden with FLEET_* environment variables
(see fleet_telemetry.config).
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime

from dotenv import load_dotenv

from fleet_telemetry.config import load_config
from fleet_telemetry.errors import AnalysisUnavailable, ConfigError
from fleet_telemetry.scoring.formatter import MarkdownFormatter
from fleet_telemetry.storage import SqliteFleetStore
from fleet_telemetry.web.service import BehaviorAnalysisService


def main() -> None:
    ap = argparse.ArgumentParser(description="Analyse one vehicle's driving behaviour")
    ap.add_argument("--db", required=True, help="SQLite database path")
    ap.add_argument("--vehicle", required=True, help="Vehicle id")
    ap.add_argument("--start", required=True, type=datetime.fromisoformat, help="Window start (ISO-8601)")
    ap.add_argument("--end", required=True, type=datetime.fromisoformat, help="Window end (ISO-8601)")
    ap.add_argument("--config", default=None, help="JSON threshold/weight overrides")
    ap.add_argument("--no-persist", action="store_true", help="Do not store detected events")
    ap.add_argument("--output", default="driving_report.md", help="Output Markdown file path")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        sys.exit(2)

    print(f"Database : {args.db}")
    print(f"Vehicle  : {args.vehicle}")
    print(f"Window   : {args.start:%Y-%m-%d %H:%M} → {args.end:%Y-%m-%d %H:%M}")
    print()

    storage = SqliteFleetStore(args.db)
    try:
        svc = BehaviorAnalysisService(storage, storage, config)
        result = svc.analyze(args.vehicle, args.start, args.end, persist=not args.no_persist)
    except (AnalysisUnavailable, ValueError) as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        storage.close()

    if result.stats is None:
        print("  [!] No track points in this window.", file=sys.stderr)

    report = result.report
    print(f"Events   : {report.total_events}")
    for kind, count in sorted(report.counts_by_type.items()):
        print(f"  {kind:<12} {count}")
    print(f"Score    : {report.score} ({report.grade.value})")

    MarkdownFormatter().write(args.output, report, result.events, result.stats)
    print(f"\n[OK] Report written to {args.output}")


if __name__ == "__main__":
    main()
