"""Trajectory analysis engine for vehicle-fleet telemetry."""

__version__ = "0.1.0"
