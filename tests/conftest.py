# tests/conftest.py

from __future__ import annotations

from datetime import UTC
from pathlib import Path
from types import SimpleNamespace

import pytest

from focus_todo.core.state import AppState
from focus_todo.notifications.local_gateway import LocalNotificationGateway
from focus_todo.tasks.task_persistence import JsonTaskFile
from focus_todo.tasks.task_store import TaskStore

from .fakes import ManualClock, MemoryPersistence, RecordingGateway


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture()
def persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture()
def store(persistence: MemoryPersistence, gateway: RecordingGateway, clock: ManualClock) -> TaskStore:
    # "Due today" is evaluated in UTC so tests do not depend on the machine's zone.
    return TaskStore(persistence, gateway, clock=clock, tz=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="focus-todo-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        tasks_path=tmp_path / "todos.json",
        notify_interval_seconds=0.01,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, clock: ManualClock) -> AppState:
    """
    AppState wired with the real gateway and JSON file, plus a manual clock.
    """
    gw = LocalNotificationGateway()
    return AppState(
        settings=settings,
        clock=clock,
        gateway=gw,
        task_store=TaskStore(JsonTaskFile(settings.tasks_path), gw, clock=clock, tz=UTC),
    )
