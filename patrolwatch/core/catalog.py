"""Checkpoint catalog persisted as one ordered JSON list."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from pathlib import Path

from .errors import NotFound
from .models import Checkpoint
from .store import CHECKPOINTS_KEY, JsonStore

_EDITABLE = ("name", "description", "latitude", "longitude", "radius_meters", "time_minutes")
_REQUIRED = ("name", "latitude", "longitude")

logger = logging.getLogger(__name__)


class CheckpointCatalog:
    """CRUD over configured checkpoints. Sessions only ever see snapshots."""

    def __init__(self, store: JsonStore | None = None, base_dir: Path | None = None):
        self.store = store or JsonStore(base_dir=base_dir)

    def load(self) -> list[Checkpoint]:
        raw = self.store.read(CHECKPOINTS_KEY, default=[])
        if not isinstance(raw, list):
            return []
        items: list[Checkpoint] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                items.append(Checkpoint.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable checkpoint %s: %s", item.get("id"), exc)
        return items

    def get(self, checkpoint_id: str) -> Checkpoint:
        for checkpoint in self.load():
            if checkpoint.id == checkpoint_id:
                return checkpoint
        raise NotFound(f"Unknown checkpoint: {checkpoint_id}")

    def add(
        self,
        name: str,
        latitude: float,
        longitude: float,
        description: str = "",
        radius_meters: float | None = None,
        time_minutes: float | None = None,
    ) -> Checkpoint:
        checkpoint = Checkpoint(
            id=uuid.uuid4().hex[:12],
            name=name.strip(),
            latitude=float(latitude),
            longitude=float(longitude),
            description=description.strip(),
            radius_meters=radius_meters,
            time_minutes=time_minutes,
        )
        items = self.load()
        items.append(checkpoint)
        self._save(items)
        return checkpoint

    def update(self, checkpoint_id: str, **changes) -> Checkpoint:
        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        cleared = [name for name in _REQUIRED if name in changes and changes[name] is None]
        if cleared:
            raise ValueError(f"Fields cannot be empty: {', '.join(cleared)}")

        items = self.load()
        for index, checkpoint in enumerate(items):
            if checkpoint.id == checkpoint_id:
                updated = replace(checkpoint, **changes)
                items[index] = updated
                self._save(items)
                return updated
        raise NotFound(f"Unknown checkpoint: {checkpoint_id}")

    def remove(self, checkpoint_id: str) -> None:
        items = self.load()
        remaining = [item for item in items if item.id != checkpoint_id]
        if len(remaining) == len(items):
            raise NotFound(f"Unknown checkpoint: {checkpoint_id}")
        self._save(remaining)

    def _save(self, items: list[Checkpoint]) -> None:
        self.store.write(CHECKPOINTS_KEY, [item.to_dict() for item in items])
