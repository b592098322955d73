"""Pytest configuration and shared fixtures."""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
import tempfile
import shutil

from patrolwatch.core import Checkpoint, PatrolSettings
from patrolwatch.notify import DispatchResult


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_home(temp_dir, monkeypatch):
    """Keep runtime state and credentials out of the user's home and env."""
    monkeypatch.setenv("PATROLWATCH_HOME", str(temp_dir / "home"))
    for name in (
        "PATROLWATCH_TELEGRAM_BOT_TOKEN",
        "PATROLWATCH_TELEGRAM_CHAT_ID",
        "PATROLWATCH_NOTIFICATION_EMAIL",
        "PATROLWATCH_SMTP_HOST",
        "PATROLWATCH_SMTP_PORT",
        "PATROLWATCH_SMTP_USERNAME",
        "PATROLWATCH_SMTP_PASSWORD",
        "PATROLWATCH_SMTP_FROM",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeNotifier:
    """Records dispatched notifications instead of sending them."""

    def __init__(self, delivered: bool = True):
        self.delivered = delivered
        self.sent = []

    async def dispatch(self, kind, message):
        self.sent.append((kind, message))
        return DispatchResult(kind=kind, delivered=self.delivered)

    def kinds(self):
        return [kind for kind, _ in self.sent]


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock(datetime(2026, 3, 2, 22, 0, 0))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def sample_checkpoints():
    """Two checkpoints about 150 m apart."""
    return [
        Checkpoint(id="a", name="Main gate", latitude=55.751244, longitude=37.618423),
        Checkpoint(id="b", name="Loading dock", latitude=55.752600, longitude=37.618423),
    ]


@pytest.fixture
def test_mode_settings():
    """Test mode with a 1-minute default: 6 seconds per checkpoint."""
    return PatrolSettings(
        verification_method="gps",
        proximity_threshold=50,
        patrol_time_minutes=1,
        test_mode=True,
        test_mode_multiplier=0.1,
    )
