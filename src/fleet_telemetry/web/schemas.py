"""Pydantic request/response schemas for the Web API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str


class PositionUpdate(BaseModel):
    vehicle_id: str
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    timestamp: datetime
    speed_kmh: float | None = None
    heading_deg: float | None = None


class TransitionRecord(BaseModel):
    fence_id: int
    vehicle_id: str
    lat: float
    lon: float
    kind: str
    occurred_at: datetime


class PositionResponse(BaseModel):
    transitions: list[TransitionRecord]


class AnalyzeRequest(BaseModel):
    vehicle_id: str
    start: datetime
    end: datetime
    persist: bool = True


class BehaviorEventRecord(BaseModel):
    vehicle_id: str
    type: str
    risk_level: str
    lat: float | None
    lon: float | None
    speed_kmh: float | None
    acceleration_ms2: float | None
    event_time: datetime
    description: str
    duration_seconds: int | None


class ScoreResponse(BaseModel):
    vehicle_id: str
    window_start: datetime
    window_end: datetime
    score: int
    grade: str
    total_events: int
    counts_by_type: dict[str, int]


class TripStatsRecord(BaseModel):
    distance_km: float
    duration_minutes: float
    average_speed_kmh: float
    max_speed_kmh: float | None
    point_count: int


class AnalyzeResponse(BaseModel):
    events: list[BehaviorEventRecord]
    score: ScoreResponse
    trip: TripStatsRecord | None


class AlertRecord(BaseModel):
    id: int
    fence_id: int
    vehicle_id: str
    lat: float | None
    lon: float | None
    alert_type: str
    occurred_at: str
    created_time: str


class AlertsResponse(BaseModel):
    count: int
    alerts: list[AlertRecord]


class HandleAlertRequest(BaseModel):
    handler: str


class VehiclesResponse(BaseModel):
    vehicle_ids: list[str]


class GeofenceRequest(BaseModel):
    name: str = ""
    center_lat: float = Field(ge=-90, le=90)
    center_lon: float = Field(ge=-180, le=180)
    radius_meters: float = Field(gt=0)
    alert_mode: str = "BOTH"
    active: bool = True


class GeofenceRecord(BaseModel):
    id: int
    name: str
    center_lat: float | None
    center_lon: float | None
    radius_meters: float
    alert_mode: str
    active: bool


class GeofenceActiveRequest(BaseModel):
    active: bool


class ContainmentRecord(BaseModel):
    fence_id: int
    last_known: str
    evaluated_at: datetime


class ContainmentResponse(BaseModel):
    vehicle_id: str
    states: list[ContainmentRecord]
