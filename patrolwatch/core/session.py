"""Patrol session lifecycle: start, verify, expire, end."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..notify.base import DispatchResult, NotificationKind, Notifier
from .deadlines import expiry, staggered_start, validate_timing
from .errors import InvalidRequest
from .geofence import distance_m
from .location import LocationFeed, LocationSample, Subscription
from .models import (
    Checkpoint,
    CheckpointRunState,
    CheckpointStatus,
    LogEntry,
    LogOutcome,
    PatrolSession,
    SessionStatus,
)
from .monitor import CheckpointMonitor
from .patrol_log import PatrolLogStore
from .report import PatrolReport, format_report
from .settings import PatrolSettings
from .store import ACTIVE_SESSION_KEY, JsonStore

logger = logging.getLogger(__name__)

# Fixes less precise than this are too coarse for small geofences.
DEFAULT_MAX_ACCURACY_M = 100.0


@dataclass
class VerificationResult:
    """Answer to a guard's verification attempt. Rejection is not an error."""

    checkpoint_id: str
    accepted: bool
    reason: str = ""
    distance_m: float | None = None


class PatrolSessionManager:
    """Owner of the single active-session slot.

    All run-state mutations go through :meth:`verify`, :meth:`expire` and
    :meth:`end`. Methods that arm the monitor or dispatch notifications
    expect to run on the event loop; without one, the monitor must be
    ticked by hand and notifications are dropped.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        settings: PatrolSettings | None = None,
        log_store: PatrolLogStore | None = None,
        store: JsonStore | None = None,
        location_feed: LocationFeed | None = None,
        clock: Callable[[], datetime] = datetime.now,
        base_dir: Path | None = None,
        max_accuracy_m: float = DEFAULT_MAX_ACCURACY_M,
    ):
        self.notifier = notifier
        self.settings = settings or PatrolSettings()
        self.log_store = log_store or PatrolLogStore(base_dir=base_dir)
        self.store = store or JsonStore(base_dir=base_dir)
        self.location_feed = location_feed
        self.max_accuracy_m = max_accuracy_m
        self.last_report: PatrolReport | None = None
        self._clock = clock
        self._session: PatrolSession | None = None
        self._monitor: CheckpointMonitor | None = None
        self._subscription: Subscription | None = None
        self._notifications: set[asyncio.Task] = set()

    @property
    def active_session(self) -> PatrolSession | None:
        return self._session

    @property
    def monitor(self) -> CheckpointMonitor | None:
        return self._monitor

    def start(
        self,
        checkpoints: Sequence[Checkpoint],
        settings: PatrolSettings | None = None,
    ) -> PatrolSession:
        """Start a patrol over a snapshot of ``checkpoints``.

        Raises:
            InvalidRequest: No checkpoints, a session already active, or
                non-positive timing/radius configuration.
        """
        if self._session is not None:
            raise InvalidRequest(f"Patrol {self._session.session_id} is already active")
        if not checkpoints:
            raise InvalidRequest("Add at least one checkpoint before starting a patrol")

        settings = settings or self.settings
        multiplier = settings.time_multiplier
        validate_timing(settings.patrol_time_minutes, multiplier)
        if settings.proximity_threshold <= 0:
            raise InvalidRequest(
                f"Proximity threshold must be positive, got {settings.proximity_threshold}"
            )
        ids = [checkpoint.id for checkpoint in checkpoints]
        if len(set(ids)) != len(ids):
            raise InvalidRequest("Checkpoint ids must be unique within a patrol")

        now = self._clock()
        run_states: list[CheckpointRunState] = []
        for index, checkpoint in enumerate(checkpoints):
            snapshot = checkpoint.resolved(settings.proximity_threshold, settings.patrol_time_minutes)
            started_at = staggered_start(now, index)
            run_states.append(
                CheckpointRunState(
                    checkpoint=snapshot,
                    started_at=started_at,
                    deadline=expiry(started_at, snapshot.time_minutes, multiplier),
                )
            )

        session = PatrolSession(
            session_id=f"patrol-{now.strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:6]}",
            started_at=now,
            run_states=run_states,
            time_multiplier=multiplier,
        )
        self.settings = settings
        self._session = session
        self._persist()
        logger.info(
            "Patrol %s started with %d checkpoint(s), multiplier %s",
            session.session_id,
            len(run_states),
            multiplier,
        )

        names = ", ".join(state.checkpoint.name for state in run_states)
        self._notify(
            NotificationKind.PATROL_STARTED,
            f"Patrol started at {now.strftime('%H:%M:%S')} with {len(run_states)} checkpoint(s): {names}",
        )
        self._arm(session)
        return session

    def restore(self) -> PatrolSession | None:
        """Resume a persisted active session after a restart."""
        if self._session is not None:
            return self._session
        data = self.store.read(ACTIVE_SESSION_KEY)
        if not isinstance(data, dict):
            return None
        session = PatrolSession.from_dict(data)
        if not session.is_active or not session.run_states:
            self.store.delete(ACTIVE_SESSION_KEY)
            return None

        self._session = session
        logger.info("Restored patrol %s (%d pending)", session.session_id, len(session.pending()))
        self._arm(session)
        return session

    def verify(self, checkpoint_id: str) -> bool:
        """Mark a checkpoint verified. Unknown or resolved ids are a silent no-op."""
        session = self._session
        if session is None:
            return False
        state = session.run_state(checkpoint_id)
        if state is None or not state.is_pending:
            return False

        now = self._clock()
        state.status = CheckpointStatus.VERIFIED
        state.verified_at = now
        self._log(session, state, LogOutcome.COMPLETED, now)
        self._persist()
        logger.info("Checkpoint %s verified in patrol %s", state.checkpoint.name, session.session_id)

        self.handle_all_resolved(session)
        return True

    def request_verification(
        self,
        checkpoint_id: str,
        sample: LocationSample | None = None,
    ) -> VerificationResult:
        """Verify a checkpoint on the guard's request, enforcing the geofence in GPS mode."""
        session = self._session
        if session is None:
            return VerificationResult(checkpoint_id, accepted=False, reason="no active patrol")
        state = session.run_state(checkpoint_id)
        if state is None:
            return VerificationResult(checkpoint_id, accepted=False, reason="unknown checkpoint")
        if not state.is_pending:
            return VerificationResult(checkpoint_id, accepted=False, reason=f"already {state.status.value}")

        distance: float | None = None
        if self.settings.verification_method == "gps":
            if sample is None:
                return VerificationResult(checkpoint_id, accepted=False, reason="waiting for location")
            checkpoint = state.checkpoint
            distance = distance_m(sample.latitude, sample.longitude, checkpoint.latitude, checkpoint.longitude)
            if distance > (checkpoint.radius_meters or 0):
                logger.info(
                    "Verification of %s rejected: %.1f m away (radius %s m)",
                    checkpoint.name,
                    distance,
                    checkpoint.radius_meters,
                )
                return VerificationResult(
                    checkpoint_id, accepted=False, reason="out of range", distance_m=distance
                )

        accepted = self.verify(checkpoint_id)
        return VerificationResult(
            checkpoint_id,
            accepted=accepted,
            reason="" if accepted else "not pending",
            distance_m=distance,
        )

    def on_position(self, sample: LocationSample) -> list[str]:
        """Verify every pending checkpoint whose geofence contains ``sample``."""
        session = self._session
        if session is None:
            return []
        if sample.accuracy is not None and sample.accuracy > self.max_accuracy_m:
            logger.debug("Ignoring fix with accuracy %.0f m", sample.accuracy)
            return []

        verified: list[str] = []
        for state in session.pending():
            # Verifying the last pending checkpoint ends the session mid-loop.
            if self._session is not session:
                break
            checkpoint = state.checkpoint
            distance = distance_m(sample.latitude, sample.longitude, checkpoint.latitude, checkpoint.longitude)
            if distance <= (checkpoint.radius_meters or 0) and self.verify(checkpoint.id):
                verified.append(checkpoint.id)
        return verified

    def expire(self, checkpoint_id: str, now: datetime | None = None) -> bool:
        """Transition a pending checkpoint to expired. Called by the monitor."""
        session = self._session
        if session is None:
            return False
        state = session.run_state(checkpoint_id)
        # Status guard: a checkpoint verified first is never expired.
        if state is None or not state.is_pending:
            return False

        now = now or self._clock()
        minutes = state.checkpoint.time_minutes or 0
        state.status = CheckpointStatus.EXPIRED
        state.expired_at = now
        self._log(
            session,
            state,
            LogOutcome.DELAYED,
            now,
            notes=f"Not verified within the allotted {minutes:g} min",
        )
        self._persist()
        logger.warning("Checkpoint %s expired in patrol %s", state.checkpoint.name, session.session_id)
        self._notify(
            NotificationKind.MISSED_POINT,
            f'Warning: checkpoint "{state.checkpoint.name}" was not verified within {minutes:g} min',
        )
        return True

    def handle_all_resolved(self, session: PatrolSession) -> PatrolReport | None:
        """End ``session`` automatically once nothing is pending."""
        if self._session is not session or not session.all_resolved:
            return None
        logger.info("All checkpoints of %s resolved; ending patrol", session.session_id)
        return self.end(manual=False)

    def tick(self, now: datetime | None = None) -> bool:
        """Drive one monitor pass by hand (no event loop, or tests)."""
        if self._monitor is None:
            return False
        return self._monitor.tick(now)

    def end(self, manual: bool = True) -> PatrolReport | None:
        """Terminate the active session. A no-op returning None if none is active."""
        session = self._session
        if session is None:
            return None

        now = self._clock()
        pending = session.pending()
        for state in pending:
            state.status = CheckpointStatus.MISSED
            self._log(session, state, LogOutcome.MISSED, now, notes="Patrol ended before verification")

        session.status = SessionStatus.CANCELLED if manual and pending else SessionStatus.COMPLETED
        session.ended_at = now
        self._disarm()
        self._session = None
        self.store.delete(ACTIVE_SESSION_KEY)

        report = format_report(session.run_states, session.started_at, now)
        self.last_report = report
        logger.info(
            "Patrol %s %s: %d/%d verified",
            session.session_id,
            session.status.value,
            report.verified_count,
            report.total_count,
        )
        self._notify(NotificationKind.PATROL_COMPLETED, report.text)
        return report

    def suspend(self) -> None:
        """Stop monitoring without ending the session; :meth:`restore` resumes it."""
        if self._session is not None:
            self._persist()
        self._disarm()
        self._session = None

    async def drain(self) -> list[DispatchResult | None]:
        """Wait for outstanding notification deliveries."""
        if not self._notifications:
            return []
        return await asyncio.gather(*list(self._notifications))

    def _arm(self, session: PatrolSession) -> None:
        self._monitor = CheckpointMonitor(
            self,
            session,
            interval_seconds=self.settings.monitor_interval_seconds,
            clock=self._clock,
        )
        self._monitor.start()
        if self.location_feed is not None:
            self._subscription = self.location_feed.subscribe(self.on_position)

    def _disarm(self) -> None:
        if self._monitor is not None:
            self._monitor.stop()
            self._monitor = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _log(
        self,
        session: PatrolSession,
        state: CheckpointRunState,
        outcome: LogOutcome,
        now: datetime,
        notes: str | None = None,
    ) -> None:
        entry = LogEntry(
            session_id=session.session_id,
            checkpoint_id=state.checkpoint.id,
            checkpoint_name=state.checkpoint.name,
            outcome=outcome,
            timestamp=now,
            notes=notes,
        )
        self.log_store.append(entry)

    def _persist(self) -> None:
        if self._session is not None:
            self.store.write(ACTIVE_SESSION_KEY, self._session.to_dict())

    def _notify(self, kind: NotificationKind, message: str) -> asyncio.Task | None:
        if self.notifier is None or not self.settings.notifications_enabled:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; %s notification dropped", kind.value)
            return None
        task = loop.create_task(self._deliver(kind, message))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)
        return task

    async def _deliver(self, kind: NotificationKind, message: str) -> DispatchResult | None:
        try:
            result = await self.notifier.dispatch(kind, message)
        except Exception as exc:
            logger.warning("Notification %s failed: %s", kind.value, exc)
            return None
        if not result.delivered:
            logger.info("Notification %s not delivered: %s", kind.value, result.error or "all channels failed")
        return result
