"""Process-wide patrol settings and their persistence."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

from .store import SETTINGS_KEY, JsonStore

VERIFICATION_METHODS = ("gps", "manual")

NORMAL_INTERVAL_SECONDS = 10.0
TEST_MODE_INTERVAL_SECONDS = 1.0


@dataclass
class SmtpSettings:
    """SMTP credentials passed through to the email channel."""

    host: str = ""
    port: int = 465
    username: str = ""
    password: str = ""
    sender: str = ""
    use_ssl: bool = True

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    @classmethod
    def from_dict(cls, data: dict) -> SmtpSettings:
        return cls(
            host=str(data.get("host") or ""),
            port=int(data.get("port") or 465),
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            sender=str(data.get("sender") or data.get("from") or ""),
            use_ssl=bool(data.get("use_ssl", True)),
        )

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "password": self.password,
            "sender": self.sender,
            "use_ssl": self.use_ssl,
        }


@dataclass
class ScheduleTime:
    """Time of day at which a patrol starts automatically."""

    hour: int
    minute: int
    enabled: bool = True

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @classmethod
    def from_dict(cls, data: dict) -> ScheduleTime:
        hour = int(data.get("hour", 0) or 0)
        minute = int(data.get("minute", 0) or 0)
        return cls(
            hour=min(23, max(0, hour)),
            minute=min(59, max(0, minute)),
            enabled=bool(data.get("enabled", True)),
        )

    def to_dict(self) -> dict:
        return {"hour": self.hour, "minute": self.minute, "enabled": self.enabled}


@dataclass
class PatrolSettings:
    """Configuration consumed by the patrol engine."""

    verification_method: str = "gps"
    notifications_enabled: bool = True
    proximity_threshold: float = 50.0
    patrol_time_minutes: float = 5.0
    test_mode: bool = False
    test_mode_multiplier: float = 0.1
    notification_email: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    smtp: SmtpSettings | None = None
    schedule_enabled: bool = False
    scheduled_patrols: list[ScheduleTime] = field(default_factory=list)

    @property
    def time_multiplier(self) -> float:
        return self.test_mode_multiplier if self.test_mode else 1.0

    @property
    def monitor_interval_seconds(self) -> float:
        return TEST_MODE_INTERVAL_SECONDS if self.test_mode else NORMAL_INTERVAL_SECONDS

    @classmethod
    def from_dict(cls, data: dict) -> PatrolSettings:
        def _positive(name: str, default: float) -> float:
            try:
                value = float(data.get(name, default))
            except (TypeError, ValueError):
                return default
            return value if value > 0 else default

        def _flag(name: str, default: bool) -> bool:
            value = data.get(name)
            return default if value is None else bool(value)

        def _text(name: str) -> str | None:
            value = data.get(name)
            if not value:
                return None
            return str(value).strip() or None

        method = str(data.get("verification_method", "gps"))
        smtp = data.get("smtp")
        schedules = data.get("scheduled_patrols", [])
        if not isinstance(schedules, list):
            schedules = []

        return cls(
            verification_method=method if method in VERIFICATION_METHODS else "gps",
            notifications_enabled=_flag("notifications_enabled", True),
            proximity_threshold=_positive("proximity_threshold", 50.0),
            patrol_time_minutes=_positive("patrol_time_minutes", 5.0),
            test_mode=_flag("test_mode", False),
            test_mode_multiplier=_positive("test_mode_multiplier", 0.1),
            notification_email=_text("notification_email"),
            telegram_bot_token=_text("telegram_bot_token"),
            telegram_chat_id=_text("telegram_chat_id"),
            smtp=SmtpSettings.from_dict(smtp) if isinstance(smtp, dict) else None,
            schedule_enabled=_flag("schedule_enabled", False),
            scheduled_patrols=[
                ScheduleTime.from_dict(item) for item in schedules if isinstance(item, dict)
            ],
        )

    def to_dict(self) -> dict:
        return {
            "verification_method": self.verification_method,
            "notifications_enabled": self.notifications_enabled,
            "proximity_threshold": self.proximity_threshold,
            "patrol_time_minutes": self.patrol_time_minutes,
            "test_mode": self.test_mode,
            "test_mode_multiplier": self.test_mode_multiplier,
            "notification_email": self.notification_email,
            "telegram_bot_token": self.telegram_bot_token,
            "telegram_chat_id": self.telegram_chat_id,
            "smtp": self.smtp.to_dict() if self.smtp else None,
            "schedule_enabled": self.schedule_enabled,
            "scheduled_patrols": [item.to_dict() for item in self.scheduled_patrols],
        }

    def with_env_overrides(self, environ: dict | None = None) -> PatrolSettings:
        """Fill credentials left empty in stored settings from PATROLWATCH_* variables."""
        env = os.environ if environ is None else environ
        smtp = self.smtp or SmtpSettings()
        smtp = replace(
            smtp,
            host=smtp.host or env.get("PATROLWATCH_SMTP_HOST", ""),
            port=smtp.port if self.smtp else int(env.get("PATROLWATCH_SMTP_PORT") or smtp.port),
            username=smtp.username or env.get("PATROLWATCH_SMTP_USERNAME", ""),
            password=smtp.password or env.get("PATROLWATCH_SMTP_PASSWORD", ""),
            sender=smtp.sender or env.get("PATROLWATCH_SMTP_FROM", ""),
        )
        return replace(
            self,
            telegram_bot_token=self.telegram_bot_token or env.get("PATROLWATCH_TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=self.telegram_chat_id or env.get("PATROLWATCH_TELEGRAM_CHAT_ID") or None,
            notification_email=self.notification_email or env.get("PATROLWATCH_NOTIFICATION_EMAIL") or None,
            smtp=smtp if (smtp.host or self.smtp) else None,
        )


SETTINGS_FIELDS = frozenset(item.name for item in fields(PatrolSettings))


class SettingsStore:
    """Load and save :class:`PatrolSettings` as one JSON snapshot."""

    def __init__(self, store: JsonStore | None = None, base_dir: Path | None = None):
        self.store = store or JsonStore(base_dir=base_dir)

    def load(self) -> PatrolSettings:
        data = self.store.read(SETTINGS_KEY)
        if not isinstance(data, dict):
            return PatrolSettings()
        return PatrolSettings.from_dict(data)

    def save(self, settings: PatrolSettings) -> None:
        self.store.write(SETTINGS_KEY, settings.to_dict())

    def update(self, **changes) -> PatrolSettings:
        """Merge changes into the stored settings and write the full snapshot back."""
        unknown = set(changes) - SETTINGS_FIELDS
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        data = self.load().to_dict()
        for name, value in changes.items():
            if isinstance(value, SmtpSettings):
                value = value.to_dict()
            elif name == "scheduled_patrols" and isinstance(value, list):
                value = [item.to_dict() if isinstance(item, ScheduleTime) else item for item in value]
            data[name] = value
        settings = PatrolSettings.from_dict(data)
        self.save(settings)
        return settings
