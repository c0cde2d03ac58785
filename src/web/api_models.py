from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from sensors.base import PermissionState


class ContactIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None


class ContactOut(BaseModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None


class IncidentIn(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    details: str


class IncidentOut(BaseModel):
    id: int
    timestamp: str
    lat: Optional[float]
    lng: Optional[float]
    status: str
    details: str


class SuccessResponse(BaseModel):
    success: bool = True
    id: Optional[int] = None


class SessionCreate(BaseModel):
    user_name: str = ""


class MonitoringRequest(BaseModel):
    """
    Client report when toggling monitoring.

    The browser runs the devicemotion permission prompt itself (iOS only) and
    reports the outcome here.
    """
    enabled: bool
    supported: bool = True
    permission: PermissionState = PermissionState.NOT_REQUIRED


class MotionSampleIn(BaseModel):
    # Browsers report null for axes they cannot measure
    ax: Optional[float] = None
    ay: Optional[float] = None
    az: Optional[float] = None


class MotionBatch(BaseModel):
    samples: List[MotionSampleIn] = Field(default_factory=list)


class MotionResponse(BaseModel):
    delivered: int
    jerks: int
    countdown: Dict[str, Any]


class LocationIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ActionResponse(BaseModel):
    """Result of a countdown action (start, safe, acknowledge)."""
    accepted: bool
    countdown: Dict[str, Any]


class SessionStatus(BaseModel):
    session_id: str
    user_name: str
    monitoring: bool
    countdown: Dict[str, Any]
    escalating: bool
    location_requested: bool
    last_known_location: Optional[Dict[str, Optional[float]]] = None
    jerks_detected: int
    last_jerk: Optional[Dict[str, float]] = None
    emergency: Optional[Dict[str, Any]] = Field(None, description="Last escalation result until acknowledged")


class HealthResponse(BaseModel):
    status: str
    active_sessions: int
    hospital_lookup: str
    database_path: str
    timestamp: float
