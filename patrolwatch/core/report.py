"""Human-readable summary of a finished patrol."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..utils import format_duration
from .models import Checkpoint, CheckpointRunState, CheckpointStatus

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class PatrolReport:
    """Report card for one patrol session."""

    started_at: datetime
    ended_at: datetime
    verified: list[Checkpoint] = field(default_factory=list)
    missed: list[Checkpoint] = field(default_factory=list)
    text: str = ""

    @property
    def duration(self) -> timedelta:
        return self.ended_at - self.started_at

    @property
    def total_count(self) -> int:
        return len(self.verified) + len(self.missed)

    @property
    def verified_count(self) -> int:
        return len(self.verified)

    @property
    def missed_count(self) -> int:
        return len(self.missed)

    @property
    def efficiency_percent(self) -> float:
        if not self.total_count:
            return 0.0
        return (self.verified_count / self.total_count) * 100

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_seconds": int(self.duration.total_seconds()),
            "verified": [item.to_dict() for item in self.verified],
            "missed": [item.to_dict() for item in self.missed],
            "total_count": self.total_count,
            "verified_count": self.verified_count,
            "missed_count": self.missed_count,
            "efficiency_percent": round(self.efficiency_percent, 1),
            "text": self.text,
        }


def _format_minutes(value: float | None) -> str:
    if value is None:
        return "?"
    return f"{value:g}"


def _checkpoint_line(checkpoint: Checkpoint) -> str:
    return (
        f"  - {checkpoint.name} "
        f"({checkpoint.latitude:.6f}, {checkpoint.longitude:.6f}; "
        f"radius {checkpoint.radius_meters or 0:g} m; "
        f"{_format_minutes(checkpoint.time_minutes)} min)"
    )


def format_report(
    run_states: list[CheckpointRunState],
    started_at: datetime,
    ended_at: datetime,
) -> PatrolReport:
    """Build the patrol report from resolved run-states.

    Anything not verified (expired or still pending at the end) is listed
    as missed.
    """
    verified = [state.checkpoint for state in run_states if state.status == CheckpointStatus.VERIFIED]
    missed = [state.checkpoint for state in run_states if state.status != CheckpointStatus.VERIFIED]
    report = PatrolReport(started_at=started_at, ended_at=ended_at, verified=verified, missed=missed)

    lines = [
        "Patrol report",
        f"Started:  {started_at.strftime(TIME_FORMAT)}",
        f"Ended:    {ended_at.strftime(TIME_FORMAT)}",
        f"Duration: {format_duration(report.duration)}",
        "",
    ]
    if verified:
        lines.append("Verified checkpoints:")
        lines.extend(_checkpoint_line(item) for item in verified)
        lines.append("")
    if missed:
        lines.append("Missed checkpoints:")
        lines.extend(_checkpoint_line(item) for item in missed)
        lines.append("")
    lines.extend(
        [
            "Summary:",
            f"  Total checkpoints: {report.total_count}",
            f"  Verified: {report.verified_count}",
            f"  Missed: {report.missed_count}",
            f"  Efficiency: {report.efficiency_percent:.0f}%",
        ]
    )
    report.text = "\n".join(lines)
    return report
