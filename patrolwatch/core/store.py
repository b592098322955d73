"""Key-value persistence of whole JSON snapshots."""

from __future__ import annotations

import fcntl
import json
import logging
import re
from pathlib import Path
from typing import Any

from .runtime import runtime_dir

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"
ACTIVE_SESSION_KEY = "active-session"
CHECKPOINTS_KEY = "checkpoints"

_KEY_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class JsonStore:
    """One JSON file per key; writes replace the whole object (last write wins)."""

    def __init__(self, base_dir: Path | None = None):
        self.root = runtime_dir(base_dir)

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.root / f"{key}.json"

    def read(self, key: str, default: Any = None) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return default
        try:
            with open(path) as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
                try:
                    raw = handle.read()
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return default
        if not raw.strip():
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt store file %s: %s", path, exc)
            return default

    def write(self, key: str, value: Any) -> bool:
        """Replace the snapshot stored under key. Returns False on I/O failure."""
        path = self.path_for(key)
        payload = json.dumps(value, indent=2)
        try:
            with open(path, "a+") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                try:
                    handle.seek(0)
                    handle.truncate()
                    handle.write(payload)
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            return True
        except OSError as exc:
            logger.warning("Failed to write %s: %s", path, exc)
            return False

    def delete(self, key: str) -> bool:
        """Remove the snapshot stored under key. Returns False on I/O failure."""
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            return False
