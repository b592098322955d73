"""
Logs API route - patrol log entries, flat or grouped by session.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from patrolwatch.core import LogEntry

from ..engine import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


class LogEntryResponse(BaseModel):
    """A single checkpoint outcome from the patrol log."""

    id: str
    session_id: str
    checkpoint_id: str
    checkpoint_name: str
    outcome: str  # completed, missed, delayed
    timestamp: str
    time: str
    notes: str = ""


class LogsResponse(BaseModel):
    """List of patrol log entries, newest first."""

    entries: list[LogEntryResponse]
    total_count: int


class SessionLogResponse(BaseModel):
    session_id: str
    started_at: str
    completed_count: int
    missed_count: int
    delayed_count: int
    entries: list[LogEntryResponse]


class GroupedLogsResponse(BaseModel):
    sessions: list[SessionLogResponse]


def _format_time(dt: datetime, today: datetime) -> str:
    """Format timestamp with date context for non-today entries."""
    if dt.date() == today.date():
        return dt.strftime("%H:%M:%S")
    return dt.strftime("%b %d %H:%M")


def _entry_response(entry: LogEntry, now: datetime) -> LogEntryResponse:
    return LogEntryResponse(
        id=entry.entry_id,
        session_id=entry.session_id,
        checkpoint_id=entry.checkpoint_id,
        checkpoint_name=entry.checkpoint_name,
        outcome=entry.outcome.value,
        timestamp=entry.timestamp.isoformat(),
        time=_format_time(entry.timestamp, now),
        notes=entry.notes or "",
    )


@router.get("")
def get_logs(
    limit: int = Query(100, ge=1, le=1000),
    session_id: Optional[str] = None,
) -> LogsResponse:
    """Get recent patrol log entries, optionally for a single session."""
    log_store = get_engine().log_store
    now = datetime.now()
    if session_id:
        records = log_store.for_session(session_id)
    else:
        records = log_store.all()

    records.sort(key=lambda entry: entry.timestamp, reverse=True)
    entries = [_entry_response(entry, now) for entry in records[:limit]]
    return LogsResponse(entries=entries, total_count=len(entries))


@router.get("/grouped")
def get_grouped_logs(limit: int = Query(20, ge=1, le=200)) -> GroupedLogsResponse:
    """Get patrol log entries grouped per session, most recent session first."""
    now = datetime.now()
    sessions: list[SessionLogResponse] = []
    for session_id, records in get_engine().log_store.grouped_by_session().items():
        if len(sessions) >= limit:
            break
        outcomes = [entry.outcome.value for entry in records]
        sessions.append(SessionLogResponse(
            session_id=session_id,
            started_at=min(entry.timestamp for entry in records).isoformat(),
            completed_count=outcomes.count("completed"),
            missed_count=outcomes.count("missed"),
            delayed_count=outcomes.count("delayed"),
            entries=[_entry_response(entry, now) for entry in records],
        ))
    return GroupedLogsResponse(sessions=sessions)
