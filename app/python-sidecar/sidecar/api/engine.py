"""Process-wide patrol engine shared by the API routes.

One engine per process: the routes and the scheduler all talk to the same
session manager, so the single-active-session rule holds for the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from patrolwatch.core import (
    CheckpointCatalog,
    JsonStore,
    LocationFeed,
    PatrolLogStore,
    PatrolScheduler,
    PatrolSessionManager,
    PatrolSettings,
    SettingsStore,
)
from patrolwatch.notify import NotificationDispatcher


@dataclass
class Engine:
    settings_store: SettingsStore
    catalog: CheckpointCatalog
    log_store: PatrolLogStore
    feed: LocationFeed
    manager: PatrolSessionManager
    scheduler: PatrolScheduler

    def current_settings(self) -> PatrolSettings:
        return self.settings_store.load().with_env_overrides()

    def apply_settings(self, settings: PatrolSettings) -> None:
        """Push new settings to the manager. A running patrol keeps its deadlines."""
        self.manager.settings = settings
        self.manager.notifier = NotificationDispatcher.from_settings(settings)


_engine: Engine | None = None


def build_engine(base_dir: Path | None = None) -> Engine:
    store = JsonStore(base_dir=base_dir)
    settings_store = SettingsStore(store)
    settings = settings_store.load().with_env_overrides()
    log_store = PatrolLogStore(base_dir=base_dir)
    feed = LocationFeed()
    manager = PatrolSessionManager(
        notifier=NotificationDispatcher.from_settings(settings),
        settings=settings,
        log_store=log_store,
        store=store,
        location_feed=feed,
    )
    catalog = CheckpointCatalog(store)
    scheduler = PatrolScheduler(manager, catalog, settings_store)
    return Engine(
        settings_store=settings_store,
        catalog=catalog,
        log_store=log_store,
        feed=feed,
        manager=manager,
        scheduler=scheduler,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def set_engine(engine: Engine | None) -> None:
    global _engine
    _engine = engine
