"""Tests for scheduled patrol starts."""

from datetime import datetime

import pytest

from patrolwatch.core.catalog import CheckpointCatalog
from patrolwatch.core.schedule import PatrolScheduler
from patrolwatch.core.session import PatrolSessionManager
from patrolwatch.core.settings import PatrolSettings, ScheduleTime, SettingsStore

NIGHT_ROUND = datetime(2026, 3, 2, 22, 30, 15)


@pytest.fixture
def settings_store(temp_dir):
    store = SettingsStore(base_dir=temp_dir)
    store.update(
        schedule_enabled=True,
        scheduled_patrols=[ScheduleTime(hour=22, minute=30), ScheduleTime(hour=6, minute=0, enabled=False)],
    )
    return store


@pytest.fixture
def catalog(temp_dir):
    catalog = CheckpointCatalog(base_dir=temp_dir)
    catalog.add("Main gate", 55.751244, 37.618423)
    return catalog


@pytest.fixture
def scheduler(temp_dir, clock, catalog, settings_store):
    manager = PatrolSessionManager(clock=clock, base_dir=temp_dir)
    return PatrolScheduler(manager, catalog, settings_store, clock=clock)


class TestDue:
    """Test PatrolScheduler.due()."""

    def test_matches_enabled_entry(self):
        settings = PatrolSettings(schedule_enabled=True, scheduled_patrols=[ScheduleTime(22, 30)])

        assert PatrolScheduler.due(NIGHT_ROUND, settings).label == "22:30"

    def test_disabled_entry_never_due(self):
        settings = PatrolSettings(
            schedule_enabled=True, scheduled_patrols=[ScheduleTime(6, 0, enabled=False)]
        )

        assert PatrolScheduler.due(datetime(2026, 3, 2, 6, 0), settings) is None

    def test_schedule_switched_off(self):
        settings = PatrolSettings(schedule_enabled=False, scheduled_patrols=[ScheduleTime(22, 30)])

        assert PatrolScheduler.due(NIGHT_ROUND, settings) is None


class TestCheck:
    """Test PatrolScheduler.check()."""

    def test_starts_patrol_when_due(self, scheduler):
        session = scheduler.check(NIGHT_ROUND)

        assert session is not None
        assert scheduler.manager.active_session is session
        assert [item.name for item in session.checkpoints] == ["Main gate"]

    def test_not_due(self, scheduler):
        assert scheduler.check(datetime(2026, 3, 2, 22, 31)) is None
        assert scheduler.manager.active_session is None

    def test_fires_once_per_minute(self, scheduler):
        first = scheduler.check(NIGHT_ROUND)
        scheduler.manager.end()

        assert first is not None
        assert scheduler.check(NIGHT_ROUND.replace(second=45)) is None

    def test_skips_while_patrol_active(self, scheduler, catalog):
        scheduler.manager.start(catalog.load())

        assert scheduler.check(NIGHT_ROUND) is None

    def test_skips_with_empty_catalog(self, temp_dir, clock, settings_store):
        manager = PatrolSessionManager(clock=clock, base_dir=temp_dir)
        scheduler = PatrolScheduler(manager, CheckpointCatalog(base_dir=temp_dir / "empty"), settings_store)

        assert scheduler.check(NIGHT_ROUND) is None
        assert manager.active_session is None
