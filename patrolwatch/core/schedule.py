"""Automatic patrol start at configured times of day."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from .catalog import CheckpointCatalog
from .errors import InvalidRequest
from .models import PatrolSession
from .session import PatrolSessionManager
from .settings import PatrolSettings, ScheduleTime, SettingsStore

logger = logging.getLogger(__name__)

CHECK_INTERVAL_SECONDS = 60.0


class PatrolScheduler:
    """Start a patrol when the clock hits an enabled schedule entry."""

    def __init__(
        self,
        manager: PatrolSessionManager,
        catalog: CheckpointCatalog,
        settings_store: SettingsStore,
        clock: Callable[[], datetime] = datetime.now,
        interval_seconds: float = CHECK_INTERVAL_SECONDS,
    ):
        self.manager = manager
        self.catalog = catalog
        self.settings_store = settings_store
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._last_fired: datetime | None = None

    @staticmethod
    def due(now: datetime, settings: PatrolSettings) -> ScheduleTime | None:
        if not settings.schedule_enabled:
            return None
        for schedule in settings.scheduled_patrols:
            if schedule.enabled and schedule.hour == now.hour and schedule.minute == now.minute:
                return schedule
        return None

    def check(self, now: datetime | None = None) -> PatrolSession | None:
        """Start a scheduled patrol if one is due. Fires at most once per minute."""
        now = now or self._clock()
        minute = now.replace(second=0, microsecond=0)
        if self._last_fired == minute:
            return None
        if self.manager.active_session is not None:
            return None

        settings = self.settings_store.load().with_env_overrides()
        schedule = self.due(now, settings)
        if schedule is None:
            return None
        checkpoints = self.catalog.load()
        if not checkpoints:
            logger.info("Scheduled patrol %s skipped: no checkpoints configured", schedule.label)
            return None

        self._last_fired = minute
        try:
            session = self.manager.start(checkpoints, settings)
        except InvalidRequest as exc:
            logger.warning("Scheduled patrol %s not started: %s", schedule.label, exc)
            return None
        logger.info("Started scheduled patrol %s at %s", session.session_id, schedule.label)
        return session

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="patrol-scheduler")

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        while True:
            try:
                self.check()
            except Exception:
                logger.exception("Scheduled patrol check failed")
            await asyncio.sleep(self.interval_seconds)
