"""
Patrol API routes - start, verify, position updates and end of the active patrol.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from patrolwatch.core import (
    InvalidRequest,
    LocationSample,
    PatrolReport,
    PatrolSession,
    remaining,
)

from ..engine import get_engine

router = APIRouter()
logger = logging.getLogger(__name__)


class PositionRequest(BaseModel):
    """A location fix from the guard's device."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None

    def to_sample(self) -> LocationSample:
        return LocationSample(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy=self.accuracy,
            timestamp=self.timestamp.astimezone().replace(tzinfo=None) if self.timestamp else datetime.now(),
        )


class CheckpointStateResponse(BaseModel):
    id: str
    name: str
    status: str  # "pending" | "verified" | "expired" | "missed"
    latitude: float
    longitude: float
    radius_meters: float
    time_minutes: float
    started_at: str
    deadline: str
    remaining_seconds: int
    verified_at: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    status: str
    started_at: str
    time_multiplier: float
    verified_count: int
    total_count: int
    checkpoints: list[CheckpointStateResponse]


class ReportResponse(BaseModel):
    started_at: str
    ended_at: str
    duration_seconds: int
    total_count: int
    verified_count: int
    missed_count: int
    efficiency_percent: float
    text: str


class PatrolStateResponse(BaseModel):
    active: bool
    session: Optional[SessionResponse] = None
    last_report: Optional[ReportResponse] = None


class VerificationResponse(BaseModel):
    checkpoint_id: str
    accepted: bool
    reason: str = ""
    distance_m: Optional[float] = None
    session_ended: bool = False


class PositionResponse(BaseModel):
    verified: list[str] = []
    session_ended: bool = False


class EndResponse(BaseModel):
    ended: bool
    report: Optional[ReportResponse] = None


def _session_response(session: PatrolSession) -> SessionResponse:
    now = datetime.now()
    checkpoints = [
        CheckpointStateResponse(
            id=state.checkpoint.id,
            name=state.checkpoint.name,
            status=state.status.value,
            latitude=state.checkpoint.latitude,
            longitude=state.checkpoint.longitude,
            radius_meters=state.checkpoint.radius_meters or 0.0,
            time_minutes=state.checkpoint.time_minutes or 0.0,
            started_at=state.started_at.isoformat(),
            deadline=state.deadline.isoformat(),
            remaining_seconds=int(remaining(now, state.deadline).total_seconds()) if state.is_pending else 0,
            verified_at=state.verified_at.isoformat() if state.verified_at else None,
        )
        for state in session.run_states
    ]
    return SessionResponse(
        session_id=session.session_id,
        status=session.status.value,
        started_at=session.started_at.isoformat(),
        time_multiplier=session.time_multiplier,
        verified_count=len(session.verified_ids),
        total_count=len(session.run_states),
        checkpoints=checkpoints,
    )


def _report_response(report: PatrolReport) -> ReportResponse:
    data = report.to_dict()
    return ReportResponse(
        started_at=data["started_at"],
        ended_at=data["ended_at"],
        duration_seconds=data["duration_seconds"],
        total_count=data["total_count"],
        verified_count=data["verified_count"],
        missed_count=data["missed_count"],
        efficiency_percent=data["efficiency_percent"],
        text=data["text"],
    )


@router.get("")
async def get_patrol() -> PatrolStateResponse:
    """Current patrol state with per-checkpoint countdowns."""
    manager = get_engine().manager
    session = manager.active_session
    return PatrolStateResponse(
        active=session is not None,
        session=_session_response(session) if session else None,
        last_report=_report_response(manager.last_report) if manager.last_report else None,
    )


@router.post("/start")
async def start_patrol() -> SessionResponse:
    """Start a patrol over the current checkpoint catalog."""
    engine = get_engine()
    settings = engine.current_settings()
    engine.apply_settings(settings)
    try:
        session = engine.manager.start(engine.catalog.load(), settings)
    except InvalidRequest as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _session_response(session)


@router.post("/verify/{checkpoint_id}")
async def verify_checkpoint(
    checkpoint_id: str,
    position: Optional[PositionRequest] = None,
) -> VerificationResponse:
    """Verify one checkpoint. In GPS mode the position must be inside its geofence."""
    manager = get_engine().manager
    session = manager.active_session
    sample = position.to_sample() if position else None
    result = manager.request_verification(checkpoint_id, sample)
    return VerificationResponse(
        checkpoint_id=result.checkpoint_id,
        accepted=result.accepted,
        reason=result.reason,
        distance_m=round(result.distance_m, 1) if result.distance_m is not None else None,
        session_ended=session is not None and manager.active_session is not session,
    )


@router.post("/position")
async def report_position(position: PositionRequest) -> PositionResponse:
    """Publish a location fix; checkpoints whose geofence contains it are verified."""
    engine = get_engine()
    session = engine.manager.active_session
    before = set(session.verified_ids) if session else set()
    engine.feed.publish(position.to_sample())
    if session is None:
        return PositionResponse()
    return PositionResponse(
        verified=[cid for cid in session.verified_ids if cid not in before],
        session_ended=engine.manager.active_session is not session,
    )


@router.post("/end")
async def end_patrol() -> EndResponse:
    """End the active patrol; unverified checkpoints are logged as missed."""
    report = get_engine().manager.end(manual=True)
    if report is None:
        return EndResponse(ended=False)
    return EndResponse(ended=True, report=_report_response(report))
