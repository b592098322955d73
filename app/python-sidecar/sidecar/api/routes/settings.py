"""
Settings API routes - verification method, timing, test mode, notifications, schedule.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from patrolwatch.core import PatrolSettings

from ..engine import get_engine

router = APIRouter()
logger = logging.getLogger(__name__)


# =========================================================================
# Pydantic models
# =========================================================================

class SmtpModel(BaseModel):
    host: str = ""
    port: int = Field(default=465, gt=0, le=65535)
    username: str = ""
    password: str = ""
    sender: str = ""
    use_ssl: bool = True


class ScheduleModel(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    enabled: bool = True


class SettingsResponse(BaseModel):
    verification_method: str
    notifications_enabled: bool
    proximity_threshold: float
    patrol_time_minutes: float
    test_mode: bool
    test_mode_multiplier: float
    time_multiplier: float
    monitor_interval_seconds: float
    notification_email: Optional[str] = None
    telegram_configured: bool
    email_configured: bool
    schedule_enabled: bool
    scheduled_patrols: list[ScheduleModel] = []


class SettingsUpdateRequest(BaseModel):
    verification_method: Optional[Literal["gps", "manual"]] = None
    notifications_enabled: Optional[bool] = None
    proximity_threshold: Optional[float] = Field(default=None, gt=0)
    patrol_time_minutes: Optional[float] = Field(default=None, gt=0)
    test_mode: Optional[bool] = None
    test_mode_multiplier: Optional[float] = Field(default=None, gt=0, le=1)
    notification_email: Optional[str] = None
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    smtp: Optional[SmtpModel] = None
    schedule_enabled: Optional[bool] = None
    scheduled_patrols: Optional[list[ScheduleModel]] = None


def _response(settings: PatrolSettings) -> SettingsResponse:
    # Credentials are write-only over the API.
    return SettingsResponse(
        verification_method=settings.verification_method,
        notifications_enabled=settings.notifications_enabled,
        proximity_threshold=settings.proximity_threshold,
        patrol_time_minutes=settings.patrol_time_minutes,
        test_mode=settings.test_mode,
        test_mode_multiplier=settings.test_mode_multiplier,
        time_multiplier=settings.time_multiplier,
        monitor_interval_seconds=settings.monitor_interval_seconds,
        notification_email=settings.notification_email,
        telegram_configured=bool(settings.telegram_bot_token and settings.telegram_chat_id),
        email_configured=bool(settings.notification_email and settings.smtp and settings.smtp.configured),
        schedule_enabled=settings.schedule_enabled,
        scheduled_patrols=[ScheduleModel(**item.to_dict()) for item in settings.scheduled_patrols],
    )


# =========================================================================
# Routes
# =========================================================================

@router.get("")
def get_settings() -> SettingsResponse:
    return _response(get_engine().current_settings())


@router.put("")
def update_settings(request: SettingsUpdateRequest) -> SettingsResponse:
    """Merge the given fields into stored settings. Applies to the next patrol's deadlines."""
    engine = get_engine()
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        engine.settings_store.update(**changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    settings = engine.current_settings()
    engine.apply_settings(settings)
    logger.info("Settings updated: %s", ", ".join(sorted(changes)) or "nothing")
    return _response(settings)
