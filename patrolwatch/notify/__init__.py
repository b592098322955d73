"""Notification channels for patrol events."""

from .base import DispatchResult, NotificationChannel, NotificationKind, Notifier
from .dispatcher import NotificationDispatcher
from .email import EmailChannel
from .telegram import TelegramChannel

__all__ = [
    "DispatchResult",
    "EmailChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationKind",
    "Notifier",
    "TelegramChannel",
]
