"""Markdown driving report formatter."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from fleet_telemetry.behavior.models import BehaviorEvent, RiskLevel
from fleet_telemetry.scoring.models import DrivingScoreReport
from fleet_telemetry.track.models import TripStatistics

_RISK_LABEL: dict[RiskLevel, str] = {
    RiskLevel.LOW: "low",
    RiskLevel.MEDIUM: "medium",
    RiskLevel.HIGH: "**high**",
    RiskLevel.CRITICAL: "**CRITICAL**",
}


def _format_event(e: BehaviorEvent) -> str:
    where = f"({e.lat:.5f}, {e.lon:.5f})" if e.lat is not None and e.lon is not None else "(no fix)"
    return (
        f"| {e.event_time:%Y-%m-%d %H:%M:%S} | {e.type.value} | "
        f"{_RISK_LABEL[e.risk_level]} | {where} | {e.description} |"
    )


class MarkdownFormatter:
    """Format a :class:`DrivingScoreReport` and its events as Markdown."""

    def format(
        self,
        report: DrivingScoreReport,
        events: Sequence[BehaviorEvent] = (),
        stats: TripStatistics | None = None,
    ) -> str:
        """Return the full Markdown report as a string."""
        lines: list[str] = [
            "# Driving Report",
            "",
            f"**Vehicle**: {report.vehicle_id}  ",
            f"**Window**: {report.window_start:%Y-%m-%d %H:%M} → {report.window_end:%Y-%m-%d %H:%M}  ",
            f"**Score**: {report.score} / 100 ({report.grade.value})",
            "",
        ]

        if stats is not None:
            max_speed = f"{stats.max_speed_kmh:.1f} km/h" if stats.max_speed_kmh is not None else "n/a"
            lines += [
                "## Trip",
                "",
                f"- Distance: {stats.distance_km:.2f} km",
                f"- Duration: {stats.duration_minutes:.0f} min",
                f"- Average speed: {stats.average_speed_kmh:.1f} km/h",
                f"- Max speed: {max_speed}",
                "",
            ]

        lines += ["## Events by type", ""]
        if report.counts_by_type:
            lines += ["| Type | Count |", "|------|-------|"]
            for kind, count in sorted(report.counts_by_type.items()):
                lines.append(f"| {kind} | {count} |")
        else:
            lines.append("No events detected.")
        lines.append("")

        if events:
            lines += [
                "## Events",
                "",
                "| Time | Type | Risk | Position | Description |",
                "|------|------|------|----------|-------------|",
            ]
            lines.extend(_format_event(e) for e in events)
            lines.append("")

        return "\n".join(lines)

    def write(
        self,
        path: str,
        report: DrivingScoreReport,
        events: Sequence[BehaviorEvent] = (),
        stats: TripStatistics | None = None,
    ) -> None:
        """Write the formatted report to *path* (UTF-8)."""
        Path(path).write_text(self.format(report, events, stats), encoding="utf-8")
