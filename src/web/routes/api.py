from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from domain.errors import InvalidTransition, MotionUnsupported, PermissionDenied, PersistenceFailure
from models.motion import Location, MotionSample
from runtime.context import RuntimeContext
from runtime.session import MonitoringSession
from sensors.client_source import ClientMotionSource, ClientMotionSourceConfig
from ..api_models import (
    ActionResponse,
    ContactIn,
    ContactOut,
    HealthResponse,
    IncidentIn,
    IncidentOut,
    LocationIn,
    MonitoringRequest,
    MotionBatch,
    MotionResponse,
    SessionCreate,
    SessionStatus,
    SuccessResponse,
)
from ..services.logs_service import LogsService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_context(request: Request) -> RuntimeContext:
    return request.app.state.ctx


def get_session(session_id: str, ctx: RuntimeContext = Depends(get_context)) -> MonitoringSession:
    session = ctx.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


def _storage_error(e: PersistenceFailure) -> HTTPException:
    return HTTPException(status_code=503, detail=str(e))


@router.get("/health", response_model=HealthResponse)
def health(ctx: RuntimeContext = Depends(get_context)):
    return {
        "status": "running",
        "active_sessions": len(ctx.sessions),
        "hospital_lookup": ctx.hospital_lookup.name,
        "database_path": ctx.config.storage.local_database_path,
        "timestamp": time.time(),
    }


@router.get("/logs")
def logs(lines: int = Query(200, ge=1, le=5000), ctx: RuntimeContext = Depends(get_context)):
    return {"lines": LogsService.tail(ctx.config.log_path, lines=lines)}


# -----------------------------------------------------------------------------
# Contacts
# -----------------------------------------------------------------------------

@router.get("/contacts", response_model=List[ContactOut])
def list_contacts(ctx: RuntimeContext = Depends(get_context)):
    try:
        return [c.to_dict() for c in ctx.db.list_contacts()]
    except PersistenceFailure as e:
        raise _storage_error(e)


@router.post("/contacts", response_model=SuccessResponse)
def add_contact(body: ContactIn, ctx: RuntimeContext = Depends(get_context)):
    try:
        contact_id = ctx.db.add_contact(body.name, body.phone, body.email)
    except PersistenceFailure as e:
        raise _storage_error(e)
    return {"success": True, "id": contact_id}


@router.delete("/contacts/{contact_id}", response_model=SuccessResponse)
def delete_contact(contact_id: int, ctx: RuntimeContext = Depends(get_context)):
    try:
        deleted = ctx.db.delete_contact(contact_id)
    except PersistenceFailure as e:
        raise _storage_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Unknown contact: {contact_id}")
    return {"success": True, "id": contact_id}


# -----------------------------------------------------------------------------
# Incidents
# -----------------------------------------------------------------------------

@router.get("/incidents", response_model=List[IncidentOut])
def list_incidents(limit: Optional[int] = Query(None, ge=1), ctx: RuntimeContext = Depends(get_context)):
    try:
        return [i.to_dict() for i in ctx.db.list_incidents(limit=limit)]
    except PersistenceFailure as e:
        raise _storage_error(e)


@router.post("/incidents", response_model=SuccessResponse)
def create_incident(body: IncidentIn, ctx: RuntimeContext = Depends(get_context)):
    try:
        incident_id = ctx.db.create_incident(body.lat, body.lng, body.details)
    except PersistenceFailure as e:
        raise _storage_error(e)
    return {"success": True, "id": incident_id}


# -----------------------------------------------------------------------------
# Monitoring sessions
# -----------------------------------------------------------------------------

@router.post("/sessions", response_model=SessionStatus)
async def open_session(body: SessionCreate, ctx: RuntimeContext = Depends(get_context)):
    await ctx.sessions.expire_idle()
    session = ctx.sessions.create(body.user_name.strip())
    return session.status()


@router.get("/sessions/{session_id}", response_model=SessionStatus)
async def session_status(session: MonitoringSession = Depends(get_session)):
    return session.status()


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
async def close_session(session_id: str, ctx: RuntimeContext = Depends(get_context)):
    if not await ctx.sessions.close(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"success": True}


@router.post("/sessions/{session_id}/monitoring", response_model=SessionStatus)
async def set_monitoring(body: MonitoringRequest, session: MonitoringSession = Depends(get_session)):
    if not body.enabled:
        session.stop_monitoring()
        return session.status()

    if session.monitoring:
        return session.status()

    source = ClientMotionSource(
        ClientMotionSourceConfig(
            source_id=session.session_id,
            supported=body.supported,
            permission=body.permission,
        )
    )
    try:
        await session.start_monitoring(source)
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=e.user_message)
    except MotionUnsupported as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.status()


@router.post("/sessions/{session_id}/motion", response_model=MotionResponse)
async def push_motion(body: MotionBatch, session: MonitoringSession = Depends(get_session)):
    jerks_before = session.jerks_detected
    delivered = 0
    source = session.source
    if isinstance(source, ClientMotionSource) and source.is_active:
        samples = [MotionSample.from_dict(s.model_dump()) for s in body.samples]
        delivered = await source.push_many(samples)
    return {
        "delivered": delivered,
        "jerks": session.jerks_detected - jerks_before,
        "countdown": session.countdown.to_dict(),
    }


@router.post("/sessions/{session_id}/location", response_model=SessionStatus)
async def report_location(body: LocationIn, session: MonitoringSession = Depends(get_session)):
    session.report_location(Location(lat=body.lat, lng=body.lng))
    return session.status()


@router.post("/sessions/{session_id}/safety-check", response_model=ActionResponse)
async def start_safety_check(session: MonitoringSession = Depends(get_session)):
    accepted = await session.start_safety_check(reason="manual")
    return {"accepted": accepted, "countdown": session.countdown.to_dict()}


@router.post("/sessions/{session_id}/safe", response_model=ActionResponse)
async def mark_safe(session: MonitoringSession = Depends(get_session)):
    accepted = await session.mark_safe()
    return {"accepted": accepted, "countdown": session.countdown.to_dict()}


@router.post("/sessions/{session_id}/trigger")
async def trigger_now(session: MonitoringSession = Depends(get_session)):
    try:
        result = await session.force_trigger()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return result.to_dict()


@router.post("/sessions/{session_id}/acknowledge", response_model=ActionResponse)
async def acknowledge(session: MonitoringSession = Depends(get_session)):
    accepted = session.acknowledge()
    return {"accepted": accepted, "countdown": session.countdown.to_dict()}
