"""Polling monitor that expires overdue checkpoints."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from .models import PatrolSession

if TYPE_CHECKING:
    from .session import PatrolSessionManager

logger = logging.getLogger(__name__)


class CheckpointMonitor:
    """Re-evaluate pending checkpoints of one session on a fixed interval.

    The monitor never writes session state itself: expiries and the final
    all-resolved signal go through the manager. Each tick is a complete
    synchronous pass, and the next sleep only starts after it returns, so
    ticks of one session never overlap.
    """

    def __init__(
        self,
        manager: PatrolSessionManager,
        session: PatrolSession,
        interval_seconds: float,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.manager = manager
        self.session = session
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the polling loop on the running event loop.

        Returns False when no loop is running; ticks must then be driven
        through :meth:`tick`.
        """
        if self.running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; monitor for %s is manual", self.session.session_id)
            return False
        self._task = loop.create_task(self._run(), name=f"patrol-monitor-{self.session.session_id}")
        return True

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        # A tick that ends the session stops its own monitor; the loop exits on return.
        if task is not asyncio.current_task():
            task.cancel()

    def tick(self, now: datetime | None = None) -> bool:
        """Run one pass. Returns True while the session still has pending checkpoints."""
        if self.manager.active_session is not self.session:
            return False

        now = now or self._clock()
        self.ticks += 1
        for state in self.session.pending():
            if now >= state.deadline:
                self.manager.expire(state.checkpoint.id, now)

        if self.session.all_resolved:
            logger.debug("All checkpoints of %s resolved", self.session.session_id)
            self.manager.handle_all_resolved(self.session)
            return False
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                keep_polling = self.tick()
            except Exception:
                logger.exception("Monitor tick failed for %s", self.session.session_id)
                continue
            if not keep_polling:
                logger.debug("Monitor for %s stopped", self.session.session_id)
                return
