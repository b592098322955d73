"""Shared utilities for PatrolWatch."""

from .datetime_utils import format_duration, parse_iso

__all__ = [
    "format_duration",
    "parse_iso",
]
