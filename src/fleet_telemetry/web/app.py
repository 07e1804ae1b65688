"""FastAPI Web application."""

from __future__ import annotations

import logging
import os
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from fleet_telemetry import __version__
from fleet_telemetry.config import load_config
from fleet_telemetry.errors import AnalysisUnavailable
from fleet_telemetry.geofence.evaluator import GeofenceEvaluator
from fleet_telemetry.geofence.models import AlertMode, Geofence
from fleet_telemetry.storage import SqliteFleetStore
from fleet_telemetry.track.models import TrackPoint
from fleet_telemetry.web.schemas import (
    AlertRecord,
    AlertsResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    BehaviorEventRecord,
    ContainmentRecord,
    ContainmentResponse,
    GeofenceActiveRequest,
    GeofenceRecord,
    GeofenceRequest,
    HandleAlertRequest,
    HealthResponse,
    PositionResponse,
    PositionUpdate,
    ScoreResponse,
    TransitionRecord,
    TripStatsRecord,
    VehiclesResponse,
)
from fleet_telemetry.web.service import BehaviorAnalysisService, GeofenceMonitor

load_dotenv()  # loads .env from project root; must run before env vars are consumed

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="Fleet Telemetry", version=__version__)

_DEFAULT_DB = os.environ.get("FLEET_TELEMETRY_DB", "fleet.db")
_CONFIG = load_config(os.environ.get("FLEET_TELEMETRY_CONFIG"))

# Containment state must survive across requests.
_evaluator = GeofenceEvaluator()


def _storage(db_path: str | None = None) -> SqliteFleetStore:
    return SqliteFleetStore(db_path or _DEFAULT_DB)


def _fence_record(fence: Geofence) -> GeofenceRecord:
    return GeofenceRecord(
        id=fence.id,
        name=fence.name,
        center_lat=fence.center_lat,
        center_lon=fence.center_lon,
        radius_meters=fence.radius_meters,
        alert_mode=fence.alert_mode.value,
        active=fence.active,
    )


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, AnalysisUnavailable):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    _logger.exception("Unhandled error")
    return HTTPException(status_code=500, detail=str(exc))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.post("/api/locations", response_model=PositionResponse)
def post_location(update: PositionUpdate, db: str | None = None) -> PositionResponse:
    """Evaluate one position ping against the active geofences."""
    point = TrackPoint(
        vehicle_id=update.vehicle_id,
        latitude=update.latitude,
        longitude=update.longitude,
        timestamp=update.timestamp,
        speed_kmh=update.speed_kmh,
        heading_deg=update.heading_deg,
    )
    storage = _storage(db)
    try:
        storage.save_track_point(point)
        monitor = GeofenceMonitor(storage, storage, _evaluator)
        transitions = monitor.process_position(point)
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()

    return PositionResponse(
        transitions=[
            TransitionRecord(
                fence_id=t.fence_id,
                vehicle_id=t.vehicle_id,
                lat=t.lat,
                lon=t.lon,
                kind=t.kind.value,
                occurred_at=t.occurred_at,
            )
            for t in transitions
        ]
    )


@app.post("/api/behaviors/analyze", response_model=AnalyzeResponse)
def analyze(req: AnalyzeRequest, db: str | None = None) -> AnalyzeResponse:
    """Detect behaviour events for a window, persist them, and score them."""
    storage = _storage(db)
    try:
        svc = BehaviorAnalysisService(storage, storage, _CONFIG)
        result = svc.analyze(req.vehicle_id, req.start, req.end, persist=req.persist)
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()

    trip = None
    if result.stats is not None:
        s = result.stats
        trip = TripStatsRecord(
            distance_km=s.distance_km,
            duration_minutes=s.duration_minutes,
            average_speed_kmh=s.average_speed_kmh,
            max_speed_kmh=s.max_speed_kmh,
            point_count=s.point_count,
        )

    return AnalyzeResponse(
        events=[BehaviorEventRecord(**e.to_dict()) for e in result.events],
        score=ScoreResponse(**result.report.to_dict()),
        trip=trip,
    )


@app.get("/api/score/{vehicle_id}", response_model=ScoreResponse)
def get_score(vehicle_id: str, start: str, end: str, db: str | None = None) -> ScoreResponse:
    """Score the behaviour events already stored for a window."""
    storage = _storage(db)
    try:
        svc = BehaviorAnalysisService(storage, storage, _CONFIG)
        report = svc.score(vehicle_id, datetime.fromisoformat(start), datetime.fromisoformat(end))
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()

    return ScoreResponse(**report.to_dict())


@app.get("/api/alerts/unhandled", response_model=AlertsResponse)
def unhandled_alerts(db: str | None = None) -> AlertsResponse:
    storage = _storage(db)
    try:
        rows = storage.unhandled_alerts()
    finally:
        storage.close()

    alerts = [
        AlertRecord(
            id=r["id"],
            fence_id=r["fence_id"],
            vehicle_id=r["vehicle_id"],
            lat=r["lat"],
            lon=r["lon"],
            alert_type=r["alert_type"],
            occurred_at=r["occurred_at"],
            created_time=r["created_time"],
        )
        for r in rows
    ]
    return AlertsResponse(count=len(alerts), alerts=alerts)


@app.post("/api/alerts/{alert_id}/handle")
def handle_alert(alert_id: int, req: HandleAlertRequest, db: str | None = None) -> dict:
    storage = _storage(db)
    try:
        found = storage.handle_alert(alert_id, req.handler)
    finally:
        storage.close()

    if not found:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"id": alert_id, "handled": True}


@app.get("/api/vehicles", response_model=VehiclesResponse)
def list_vehicles(db: str | None = None) -> VehiclesResponse:
    """Vehicles with at least one stored track point."""
    storage = _storage(db)
    try:
        vehicle_ids = storage.vehicle_ids()
    finally:
        storage.close()
    return VehiclesResponse(vehicle_ids=vehicle_ids)


@app.get("/api/vehicles/{vehicle_id}/containment", response_model=ContainmentResponse)
def vehicle_containment(vehicle_id: str, db: str | None = None) -> ContainmentResponse:
    """Last known inside/outside state of a vehicle per evaluated fence."""
    storage = _storage(db)
    try:
        states = GeofenceMonitor(storage, storage, _evaluator).containment(vehicle_id)
    finally:
        storage.close()
    return ContainmentResponse(
        vehicle_id=vehicle_id,
        states=[
            ContainmentRecord(
                fence_id=s.fence_id,
                last_known=s.last_known.value,
                evaluated_at=s.evaluated_at,
            )
            for s in states
        ],
    )


@app.get("/api/geofences/{fence_id}", response_model=GeofenceRecord)
def get_geofence(fence_id: int, db: str | None = None) -> GeofenceRecord:
    storage = _storage(db)
    try:
        fence = GeofenceMonitor(storage, storage, _evaluator).get_fence(fence_id)
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()

    if fence is None:
        raise HTTPException(status_code=404, detail="Geofence not found")
    return _fence_record(fence)


@app.put("/api/geofences/{fence_id}", response_model=GeofenceRecord)
def put_geofence(fence_id: int, req: GeofenceRequest, db: str | None = None) -> GeofenceRecord:
    """Create or replace a fence.  Containment state for it starts over."""
    storage = _storage(db)
    try:
        fence = Geofence(
            id=fence_id,
            name=req.name,
            center_lat=req.center_lat,
            center_lon=req.center_lon,
            radius_meters=req.radius_meters,
            alert_mode=AlertMode.parse(req.alert_mode),
            active=req.active,
        )
        GeofenceMonitor(storage, storage, _evaluator).save_fence(fence)
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()
    return _fence_record(fence)


@app.post("/api/geofences/{fence_id}/active")
def set_geofence_active(
    fence_id: int, req: GeofenceActiveRequest, db: str | None = None
) -> dict:
    """Enable or disable a fence.  Disabling drops its containment state."""
    storage = _storage(db)
    try:
        found = GeofenceMonitor(storage, storage, _evaluator).set_fence_active(fence_id, req.active)
    except Exception as exc:
        raise _http_error(exc) from exc
    finally:
        storage.close()

    if not found:
        raise HTTPException(status_code=404, detail="Geofence not found")
    return {"id": fence_id, "active": req.active}
