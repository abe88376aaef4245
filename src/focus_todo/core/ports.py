# src/focus_todo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete implementations.
This keeps the clock, the notification backend and storage swappable and
makes testing easier (tests inject a manual clock and a recording gateway).
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import Task

TaskListener = Callable[[tuple["Task", ...]], None]


class Clock(Protocol):
    """Single source of "now". Must return timezone-aware datetimes."""

    def now(self) -> datetime: ...


class NotificationGateway(Protocol):
    """
    Delivery-side port for reminders.

    Contract:
    - schedule() with an identifier that is already pending replaces it
    - cancel() of unknown or already-delivered identifiers is a no-op
    - no acknowledgement; the core never polls gateway state
    """

    def schedule(self, identifier: str, fire_at: datetime, title: str, body: str) -> None: ...

    def cancel(self, identifiers: Iterable[str]) -> None: ...


class TaskPersistence(Protocol):
    """Durable load/save of the ordered task list."""

    def load(self) -> list[Task]: ...

    def save(self, tasks: Sequence[Task]) -> None: ...


class Notifier(Protocol):
    """
    Where fired notifications end up (console, desktop, chat...).

    Used by the local delivery loop, not by the task store.
    """

    def send_notification(self, *, title: str, body: str) -> Awaitable[None]: ...
