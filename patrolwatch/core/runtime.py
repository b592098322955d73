"""Shared runtime storage helpers."""

from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path


def _is_writable_dir(path: Path) -> bool:
    """Return whether path exists and accepts create/write/delete operations."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe = path / f".pw-write-probe-{uuid.uuid4().hex}"
        probe.write_text("ok")
        probe.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def _resolve_runtime_home() -> Path:
    """Resolve canonical runtime home with writable fallback for restricted envs."""
    configured = os.environ.get("PATROLWATCH_HOME")
    if configured:
        path = Path(configured).expanduser()
        if _is_writable_dir(path):
            return path

    preferred = Path.home() / ".patrolwatch"
    if _is_writable_dir(preferred):
        return preferred

    fallback = Path(tempfile.gettempdir()) / "patrolwatch-runtime"
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def runtime_dir(base_dir: Path | None = None) -> Path:
    """Return (and create) the directory holding persisted patrol state.

    The home is resolved lazily so ``PATROLWATCH_HOME`` set after import
    is still honoured.
    """
    target = base_dir or _resolve_runtime_home()
    target.mkdir(parents=True, exist_ok=True)
    return target
