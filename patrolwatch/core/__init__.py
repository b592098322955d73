"""Patrol session engine."""

from .settings import PatrolSettings, ScheduleTime, SettingsStore, SmtpSettings
from .catalog import CheckpointCatalog
from .deadlines import effective_minutes, expiry, remaining, staggered_start
from .errors import InvalidRequest, NotFound, PatrolError
from .geofence import distance_m, within_radius
from .location import LocationFeed, LocationSample, Subscription
from .models import (
    Checkpoint,
    CheckpointRunState,
    CheckpointStatus,
    LogEntry,
    LogOutcome,
    PatrolSession,
    SessionStatus,
)
from .monitor import CheckpointMonitor
from .patrol_log import PatrolLogStore
from .report import PatrolReport, format_report
from .schedule import PatrolScheduler
from .session import PatrolSessionManager, VerificationResult
from .store import JsonStore

__all__ = [
    "Checkpoint",
    "CheckpointCatalog",
    "CheckpointMonitor",
    "CheckpointRunState",
    "CheckpointStatus",
    "InvalidRequest",
    "JsonStore",
    "LocationFeed",
    "LocationSample",
    "LogEntry",
    "LogOutcome",
    "NotFound",
    "PatrolError",
    "PatrolLogStore",
    "PatrolReport",
    "PatrolScheduler",
    "PatrolSession",
    "PatrolSessionManager",
    "PatrolSettings",
    "ScheduleTime",
    "SessionStatus",
    "SettingsStore",
    "SmtpSettings",
    "Subscription",
    "VerificationResult",
    "distance_m",
    "effective_minutes",
    "expiry",
    "format_report",
    "remaining",
    "staggered_start",
    "within_radius",
]
