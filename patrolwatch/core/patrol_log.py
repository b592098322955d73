"""Append-only patrol log: the system of record for checkpoint outcomes."""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from pathlib import Path

from .models import LogEntry
from .runtime import runtime_dir

logger = logging.getLogger(__name__)


class PatrolLogStore:
    """JSONL log of :class:`LogEntry` records. Entries are never rewritten."""

    def __init__(self, base_dir: Path | None = None):
        self.root = runtime_dir(base_dir)
        self.path = self.root / "patrol-log.jsonl"

    def append(self, entry: LogEntry) -> bool:
        try:
            with open(self.path, "a") as handle:
                handle.write(json.dumps(entry.to_dict()) + "\n")
            return True
        except OSError as exc:
            logger.warning("Failed to append patrol log entry %s: %s", entry.entry_id, exc)
            return False

    def all(self) -> list[LogEntry]:
        if not self.path.exists():
            return []
        entries: list[LogEntry] = []
        try:
            with open(self.path) as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    try:
                        entries.append(LogEntry.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, ValueError):
                        continue
        except OSError as exc:
            logger.warning("Failed to read patrol log %s: %s", self.path, exc)
            return []
        return entries

    def recent(self, limit: int = 200) -> list[LogEntry]:
        return self.all()[-limit:]

    def for_session(self, session_id: str) -> list[LogEntry]:
        return [entry for entry in self.all() if entry.session_id == session_id]

    def grouped_by_session(self) -> OrderedDict[str, list[LogEntry]]:
        """Group entries by session, most recently started session first."""
        groups: dict[str, list[LogEntry]] = {}
        for entry in self.all():
            groups.setdefault(entry.session_id, []).append(entry)
        ordered = sorted(
            groups.items(),
            key=lambda item: min(entry.timestamp for entry in item[1]),
            reverse=True,
        )
        return OrderedDict(ordered)
