"""Fan-out notification dispatcher."""

from __future__ import annotations

import asyncio
import logging

from ..core.settings import PatrolSettings
from .base import SUBJECTS, DispatchResult, NotificationChannel, NotificationKind
from .email import EmailChannel
from .telegram import TelegramChannel

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Send each notification to every configured channel.

    ``dispatch`` never raises: channel errors are logged as transport
    failures and reported through :class:`DispatchResult`.
    """

    def __init__(self, channels: list[NotificationChannel] | None = None, enabled: bool = True):
        self.channels = list(channels or [])
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: PatrolSettings) -> NotificationDispatcher:
        channels: list[NotificationChannel] = []
        if settings.telegram_bot_token and settings.telegram_chat_id:
            channels.append(TelegramChannel(settings.telegram_bot_token, settings.telegram_chat_id))
        if settings.notification_email and settings.smtp and settings.smtp.configured:
            channels.append(EmailChannel(settings.smtp, settings.notification_email))
        return cls(channels, enabled=settings.notifications_enabled)

    async def dispatch(self, kind: NotificationKind, message: str) -> DispatchResult:
        if not self.enabled:
            return DispatchResult(kind=kind, delivered=False, error="notifications disabled")
        if not self.channels:
            logger.info("No notification channel configured; %s not delivered", kind.value)
            return DispatchResult(kind=kind, delivered=False, error="no channel configured")

        subject = SUBJECTS.get(kind, kind.value)
        outcomes = await asyncio.gather(
            *(channel.send(subject, message) for channel in self.channels),
            return_exceptions=True,
        )

        results: dict[str, bool] = {}
        errors: list[str] = []
        for channel, outcome in zip(self.channels, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Channel %s failed for %s: %s", channel.name, kind.value, outcome)
                errors.append(f"{channel.name}: {outcome}")
                results[channel.name] = False
            else:
                results[channel.name] = bool(outcome)

        delivered = any(results.values())
        if not delivered:
            logger.warning("Notification %s was not delivered on any channel", kind.value)
        return DispatchResult(
            kind=kind,
            delivered=delivered,
            channels=results,
            error="; ".join(errors) or None,
        )
