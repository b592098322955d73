"""Patrol data models: checkpoints, run-state, sessions and log entries."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ..utils import parse_iso
from .deadlines import effective_minutes


class CheckpointStatus(Enum):
    """Resolution status of a checkpoint within one session."""

    PENDING = "pending"
    VERIFIED = "verified"
    EXPIRED = "expired"
    MISSED = "missed"  # closed by session end while pending


class SessionStatus(Enum):
    """Lifecycle status of a patrol session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LogOutcome(Enum):
    """Outcome recorded for a checkpoint in the patrol log."""

    COMPLETED = "completed"  # verified in time
    MISSED = "missed"        # still pending when the session ended
    DELAYED = "delayed"      # its own deadline elapsed


def _float_or_none(value) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Checkpoint:
    """A configured place the guard must visit.

    ``radius_meters`` and ``time_minutes`` may be None in the catalog; a
    session snapshot always has them resolved (see :meth:`resolved`).
    """

    id: str
    name: str
    latitude: float
    longitude: float
    description: str = ""
    radius_meters: float | None = None
    time_minutes: float | None = None

    def resolved(self, default_radius: float, default_minutes: float) -> Checkpoint:
        """Return a copy with radius and allotted minutes filled from defaults."""
        radius = self.radius_meters if self.radius_meters and self.radius_meters > 0 else default_radius
        return replace(
            self,
            radius_meters=float(radius),
            time_minutes=effective_minutes(self.time_minutes, default_minutes),
        )

    @classmethod
    def from_dict(cls, data: dict) -> Checkpoint:
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex[:12]),
            name=str(data.get("name", "")),
            latitude=float(data.get("latitude", 0.0)),
            longitude=float(data.get("longitude", 0.0)),
            description=str(data.get("description") or ""),
            radius_meters=_float_or_none(data.get("radius_meters")),
            time_minutes=_float_or_none(data.get("time_minutes")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius_meters": self.radius_meters,
            "time_minutes": self.time_minutes,
        }


@dataclass
class CheckpointRunState:
    """Per-session state of one checkpoint."""

    checkpoint: Checkpoint
    started_at: datetime
    deadline: datetime
    status: CheckpointStatus = CheckpointStatus.PENDING
    verified_at: datetime | None = None
    expired_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == CheckpointStatus.PENDING

    @classmethod
    def from_dict(cls, data: dict) -> CheckpointRunState:
        try:
            status = CheckpointStatus(data.get("status", "pending"))
        except ValueError:
            status = CheckpointStatus.PENDING
        started_at = parse_iso(data.get("started_at")) or datetime.now()
        return cls(
            checkpoint=Checkpoint.from_dict(data.get("checkpoint") or {}),
            started_at=started_at,
            deadline=parse_iso(data.get("deadline")) or started_at,
            status=status,
            verified_at=parse_iso(data.get("verified_at")),
            expired_at=parse_iso(data.get("expired_at")),
        )

    def to_dict(self) -> dict:
        return {
            "checkpoint": self.checkpoint.to_dict(),
            "started_at": self.started_at.isoformat(),
            "deadline": self.deadline.isoformat(),
            "status": self.status.value,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "expired_at": self.expired_at.isoformat() if self.expired_at else None,
        }


@dataclass
class PatrolSession:
    """One in-flight patrol over an immutable checkpoint snapshot."""

    session_id: str
    started_at: datetime
    run_states: list[CheckpointRunState]
    status: SessionStatus = SessionStatus.ACTIVE
    ended_at: datetime | None = None
    time_multiplier: float = 1.0

    @property
    def checkpoints(self) -> list[Checkpoint]:
        return [state.checkpoint for state in self.run_states]

    @property
    def verified_ids(self) -> list[str]:
        return [
            state.checkpoint.id
            for state in self.run_states
            if state.status == CheckpointStatus.VERIFIED
        ]

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def all_resolved(self) -> bool:
        """True once no checkpoint is pending."""
        return not any(state.is_pending for state in self.run_states)

    def pending(self) -> list[CheckpointRunState]:
        return [state for state in self.run_states if state.is_pending]

    def run_state(self, checkpoint_id: str) -> CheckpointRunState | None:
        for state in self.run_states:
            if state.checkpoint.id == checkpoint_id:
                return state
        return None

    @classmethod
    def from_dict(cls, data: dict) -> PatrolSession:
        try:
            status = SessionStatus(data.get("status", "active"))
        except ValueError:
            status = SessionStatus.ACTIVE
        raw_states = data.get("run_states") or []
        return cls(
            session_id=str(data.get("session_id") or uuid.uuid4().hex[:12]),
            started_at=parse_iso(data.get("started_at")) or datetime.now(),
            run_states=[
                CheckpointRunState.from_dict(item) for item in raw_states if isinstance(item, dict)
            ],
            status=status,
            ended_at=parse_iso(data.get("ended_at")),
            time_multiplier=float(data.get("time_multiplier") or 1.0),
        )

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "status": self.status.value,
            "time_multiplier": self.time_multiplier,
            "run_states": [state.to_dict() for state in self.run_states],
        }


@dataclass(frozen=True)
class LogEntry:
    """Immutable audit record for one checkpoint outcome."""

    session_id: str
    checkpoint_id: str
    checkpoint_name: str
    outcome: LogOutcome
    timestamp: datetime = field(default_factory=datetime.now)
    notes: str | None = None
    entry_id: str = field(default_factory=lambda: f"log-{uuid.uuid4().hex[:12]}")

    @classmethod
    def from_dict(cls, data: dict) -> LogEntry:
        return cls(
            entry_id=str(data.get("entry_id") or f"log-{uuid.uuid4().hex[:12]}"),
            session_id=str(data.get("session_id", "")),
            checkpoint_id=str(data.get("checkpoint_id", "")),
            checkpoint_name=str(data.get("checkpoint_name", "")),
            outcome=LogOutcome(data.get("outcome", "missed")),
            timestamp=parse_iso(data.get("timestamp")) or datetime.now(),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "session_id": self.session_id,
            "checkpoint_id": self.checkpoint_id,
            "checkpoint_name": self.checkpoint_name,
            "outcome": self.outcome.value,
            "timestamp": self.timestamp.isoformat(),
            "notes": self.notes,
        }
