"""Notification kinds, channel protocol and dispatch result."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class NotificationKind(Enum):
    """Events the patrol engine reports to supervisors."""

    PATROL_STARTED = "patrol_started"
    MISSED_POINT = "missed_point"
    PATROL_COMPLETED = "patrol_completed"


SUBJECTS = {
    NotificationKind.PATROL_STARTED: "Patrol started",
    NotificationKind.MISSED_POINT: "Checkpoint missed",
    NotificationKind.PATROL_COMPLETED: "Patrol report",
}


class NotificationChannel(Protocol):
    """A single transport (chat bot, email)."""

    name: str

    async def send(self, subject: str, message: str) -> bool:
        """Deliver one message. Returns False instead of raising on failure."""
        ...


class Notifier(Protocol):
    """What the patrol engine needs from the notification collaborator."""

    async def dispatch(self, kind: NotificationKind, message: str) -> DispatchResult:
        ...


@dataclass
class DispatchResult:
    """Outcome of one dispatch across all configured channels."""

    kind: NotificationKind
    delivered: bool
    channels: dict[str, bool] = field(default_factory=dict)
    error: str | None = None
    dispatched_at: datetime = field(default_factory=datetime.now)
