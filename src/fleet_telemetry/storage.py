"""SqliteFleetStore: SQLite implementation of the collaborator stores.

Schema design notes:
  - Timestamps are stored twice: ISO-8601 TEXT, which rebuilds the exact
    datetime (offset included), and a REAL Unix epoch in ``ts``, which range
    queries and ``ORDER BY`` use.  Naive datetimes are taken as UTC.
  - ``track_points`` writes are batched; every read flushes first.
  - ``fence_alerts`` rows start unhandled; :meth:`SqliteFleetStore.handle_alert`
    records who handled them and when.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from fleet_telemetry.behavior.models import BehaviorEvent
from fleet_telemetry.geofence.models import AlertMode, AlertTransition, Geofence
from fleet_telemetry.track.models import TrackPoint

_DDL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous  = NORMAL;

CREATE TABLE IF NOT EXISTS track_points (
    vehicle_id  TEXT NOT NULL,
    timestamp   TEXT NOT NULL,
    ts          REAL NOT NULL,
    latitude    REAL,
    longitude   REAL,
    speed_kmh   REAL,
    heading_deg REAL
);

CREATE INDEX IF NOT EXISTS idx_track_vehicle_time
    ON track_points (vehicle_id, ts);

CREATE TABLE IF NOT EXISTS geofences (
    id            INTEGER PRIMARY KEY,
    name          TEXT    NOT NULL DEFAULT '',
    center_lat    REAL,
    center_lon    REAL,
    radius_meters REAL    NOT NULL,
    alert_mode    TEXT    NOT NULL DEFAULT 'BOTH',
    active        INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS fence_alerts (
    id           INTEGER PRIMARY KEY,
    fence_id     INTEGER NOT NULL,
    vehicle_id   TEXT    NOT NULL,
    lat          REAL,
    lon          REAL,
    alert_type   TEXT    NOT NULL,
    occurred_at  TEXT    NOT NULL,
    handled      INTEGER NOT NULL DEFAULT 0,
    handled_by   TEXT,
    handled_time TEXT,
    created_time TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_alerts_handled
    ON fence_alerts (handled);

CREATE TABLE IF NOT EXISTS behavior_events (
    id               INTEGER PRIMARY KEY,
    vehicle_id       TEXT NOT NULL,
    type             TEXT NOT NULL,
    risk_level       TEXT NOT NULL,
    lat              REAL,
    lon              REAL,
    speed_kmh        REAL,
    acceleration_ms2 REAL,
    duration_seconds INTEGER,
    event_time       TEXT NOT NULL,
    ts               REAL NOT NULL,
    description      TEXT,
    created_time     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_behavior_vehicle_time
    ON behavior_events (vehicle_id, ts);
"""

_INSERT_POINT = """
INSERT INTO track_points (vehicle_id, timestamp, ts, latitude, longitude, speed_kmh, heading_deg)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_TRACK = """
SELECT vehicle_id, timestamp, latitude, longitude, speed_kmh, heading_deg
FROM   track_points
WHERE  vehicle_id = ? AND ts BETWEEN ? AND ?
ORDER  BY ts
"""

_UPSERT_FENCE = """
INSERT OR REPLACE INTO geofences
    (id, name, center_lat, center_lon, radius_meters, alert_mode, active)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_INSERT_ALERT = """
INSERT INTO fence_alerts
    (fence_id, vehicle_id, lat, lon, alert_type, occurred_at, handled, created_time)
VALUES (?, ?, ?, ?, ?, ?, 0, ?)
"""

_INSERT_EVENT = """
INSERT INTO behavior_events
    (vehicle_id, type, risk_level, lat, lon, speed_kmh, acceleration_ms2,
     duration_seconds, event_time, ts, description, created_time)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_EVENTS = """
SELECT vehicle_id, type, risk_level, lat, lon, speed_kmh, acceleration_ms2,
       duration_seconds, event_time, description
FROM   behavior_events
WHERE  vehicle_id = ? AND ts BETWEEN ? AND ?
ORDER  BY ts, id
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _epoch(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _fence_from_row(row: sqlite3.Row) -> Geofence:
    return Geofence(
        id=row["id"],
        name=row["name"],
        center_lat=row["center_lat"],
        center_lon=row["center_lon"],
        radius_meters=row["radius_meters"],
        alert_mode=AlertMode.parse(row["alert_mode"]),
        active=bool(row["active"]),
    )


class SqliteFleetStore:
    """Track, geofence, alert and behaviour storage on one SQLite database.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Pass ``":memory:"`` for in-process testing.
    """

    def __init__(self, db_path: str = "fleet.db") -> None:
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        for stmt in _DDL.strip().split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.commit()
        self._batch: list[tuple] = []
        self._batch_size = 500

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------

    def save_track_point(self, point: TrackPoint) -> None:
        """Persist one track point.  Writes are batched for performance."""
        self._batch.append((
            point.vehicle_id,
            point.timestamp.isoformat(),
            _epoch(point.timestamp),
            point.latitude,
            point.longitude,
            point.speed_kmh,
            point.heading_deg,
        ))
        if len(self._batch) >= self._batch_size:
            self._flush()

    def save_track(self, points: Iterable[TrackPoint]) -> None:
        for p in points:
            self.save_track_point(p)
        self._flush()

    def get_track(self, vehicle_id: str, start: datetime, end: datetime) -> list[TrackPoint]:
        """Return points for *vehicle_id* in ``[start, end]``, ascending by time."""
        self._flush()
        cursor = self._conn.execute(
            _SELECT_TRACK, (vehicle_id, _epoch(start), _epoch(end))
        )
        return [TrackPoint.from_storage_dict(dict(row)) for row in cursor.fetchall()]

    def vehicle_ids(self) -> list[str]:
        """Return every vehicle with at least one track point, sorted."""
        self._flush()
        rows = self._conn.execute(
            "SELECT DISTINCT vehicle_id FROM track_points ORDER BY vehicle_id"
        ).fetchall()
        return [r[0] for r in rows]

    # ------------------------------------------------------------------
    # Geofences
    # ------------------------------------------------------------------

    def save_geofence(self, fence: Geofence) -> None:
        """Insert *fence*, or replace the stored fence with the same id."""
        self._conn.execute(
            _UPSERT_FENCE,
            (
                fence.id,
                fence.name,
                fence.center_lat,
                fence.center_lon,
                fence.radius_meters,
                fence.alert_mode.value,
                int(fence.active),
            ),
        )
        self._conn.commit()

    def set_geofence_active(self, fence_id: int, active: bool) -> bool:
        """Enable or disable a fence.  Returns False if no such fence exists."""
        cursor = self._conn.execute(
            "UPDATE geofences SET active = ? WHERE id = ?", (int(active), fence_id)
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def get_geofence(self, fence_id: int) -> Geofence | None:
        row = self._conn.execute("SELECT * FROM geofences WHERE id = ?", (fence_id,)).fetchone()
        return _fence_from_row(row) if row else None

    def active_geofences(self) -> list[Geofence]:
        rows = self._conn.execute(
            "SELECT * FROM geofences WHERE active = 1 ORDER BY id"
        ).fetchall()
        return [_fence_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Fence alerts
    # ------------------------------------------------------------------

    def save_transitions(self, transitions: Sequence[AlertTransition]) -> list[int]:
        """Persist each transition as an unhandled alert; return the new row ids."""
        created = _now()
        ids: list[int] = []
        for t in transitions:
            cursor = self._conn.execute(
                _INSERT_ALERT,
                (
                    t.fence_id,
                    t.vehicle_id,
                    t.lat,
                    t.lon,
                    t.kind.value,
                    t.occurred_at.isoformat(),
                    created,
                ),
            )
            ids.append(cursor.lastrowid)
        self._conn.commit()
        return ids

    def unhandled_alerts(self) -> list[dict]:
        """Return unhandled alert rows, newest first."""
        rows = self._conn.execute(
            "SELECT * FROM fence_alerts WHERE handled = 0 ORDER BY created_time DESC, id DESC"
        ).fetchall()
        return [dict(r) for r in rows]

    def unhandled_alert_count(self) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM fence_alerts WHERE handled = 0"
        ).fetchone()[0]

    def handle_alert(self, alert_id: int, handler: str) -> bool:
        """Mark an alert handled by *handler*.  Returns False if no such alert."""
        cursor = self._conn.execute(
            "UPDATE fence_alerts SET handled = 1, handled_by = ?, handled_time = ? WHERE id = ?",
            (handler, _now(), alert_id),
        )
        self._conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Behaviour events
    # ------------------------------------------------------------------

    def save_events(self, events: Sequence[BehaviorEvent]) -> list[int]:
        """Persist *events* as-is; return the new row ids."""
        created = _now()
        ids: list[int] = []
        for e in events:
            cursor = self._conn.execute(
                _INSERT_EVENT,
                (
                    e.vehicle_id,
                    e.type.value,
                    e.risk_level.value,
                    e.lat,
                    e.lon,
                    e.speed_kmh,
                    e.acceleration_ms2,
                    e.duration_seconds,
                    e.event_time.isoformat(),
                    _epoch(e.event_time),
                    e.description,
                    created,
                ),
            )
            ids.append(cursor.lastrowid)
        self._conn.commit()
        return ids

    def events_between(
        self, vehicle_id: str, start: datetime, end: datetime
    ) -> list[BehaviorEvent]:
        """Return stored events for *vehicle_id* in ``[start, end]``, oldest first."""
        cursor = self._conn.execute(
            _SELECT_EVENTS, (vehicle_id, _epoch(start), _epoch(end))
        )
        return [BehaviorEvent.from_storage_dict(dict(row)) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Flush buffered writes and close the database connection."""
        self._flush()
        self._conn.close()

    def _flush(self) -> None:
        if self._batch:
            self._conn.executemany(_INSERT_POINT, self._batch)
            self._conn.commit()
            self._batch.clear()
