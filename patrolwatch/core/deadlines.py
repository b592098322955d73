"""Checkpoint deadline arithmetic with test-mode time dilation."""

from __future__ import annotations

from datetime import datetime, timedelta

from .errors import InvalidRequest

MS_PER_MINUTE = 60_000
STAGGER_SECONDS = 1


def expiry(start: datetime, allotted_minutes: float, multiplier: float = 1.0) -> datetime:
    """Return the instant a checkpoint started at ``start`` expires.

    ``start + allotted_minutes * 60000 ms * multiplier``. The multiplier is
    1.0 in normal operation and a fraction such as 0.1 in test mode.
    """
    return start + timedelta(milliseconds=allotted_minutes * MS_PER_MINUTE * multiplier)


def effective_minutes(checkpoint_minutes: float | None, default_minutes: float) -> float:
    """Resolve a checkpoint's allotted minutes, falling back to the session default."""
    if checkpoint_minutes is not None and checkpoint_minutes > 0:
        return float(checkpoint_minutes)
    return float(default_minutes)


def validate_timing(default_minutes: float, multiplier: float) -> None:
    """Reject non-positive timing configuration before a session starts."""
    if default_minutes <= 0:
        raise InvalidRequest(f"Default allotted minutes must be positive, got {default_minutes}")
    if multiplier <= 0:
        raise InvalidRequest(f"Time multiplier must be positive, got {multiplier}")


def staggered_start(session_start: datetime, index: int) -> datetime:
    """Offset each checkpoint's start so no two deadlines coincide."""
    return session_start + timedelta(seconds=index * STAGGER_SECONDS)


def remaining(now: datetime, deadline: datetime) -> timedelta:
    """Time left until ``deadline``, never negative."""
    return max(timedelta(0), deadline - now)
