# src/focus_todo/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..notifications.local_gateway import LocalNotificationGateway
from ..tasks.task_store import TaskStore
from .ports import Clock
from .session import WorkSession


@dataclass
class AppState:
    # Settings object (config.Settings or a test stand-in).
    settings: object

    clock: Clock
    gateway: LocalNotificationGateway
    task_store: TaskStore

    session: WorkSession = field(default_factory=WorkSession)
    # Serializes console commands with anything else touching the session.
    lock: threading.RLock = field(default_factory=threading.RLock)
