# src/focus_todo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the clock, notification gateway, JSON persistence and TaskStore into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock
from ..core.state import AppState
from ..notifications.local_gateway import LocalNotificationGateway
from ..tasks.task_persistence import JsonTaskFile
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    _ensure_local_dirs(settings)

    gateway = LocalNotificationGateway()
    # TaskStore reconciles reminders on construction, so the gateway starts populated.
    task_store = TaskStore(JsonTaskFile(settings.tasks_path), gateway, clock=clock)
    logger.info("Pending notifications after startup: %d", len(gateway.pending()))

    return AppState(
        settings=settings,
        clock=clock,
        gateway=gateway,
        task_store=task_store,
    )
