# src/focus_todo/notifications/local_gateway.py

from __future__ import annotations

"""
In-process notification gateway.

LocalNotificationGateway keeps pending notifications keyed by identifier.
run_notification_loop() is a small polling loop that:
- pops notifications whose fire time has passed,
- hands them to an injected Notifier port,
- never delivers the same pending entry twice.

Formatting and the actual output channel belong to the notifier, not the gateway.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ..core.ports import Clock, Notifier

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Notification:
    identifier: str
    fire_at: datetime
    title: str
    body: str


class LocalNotificationGateway:
    """
    Thread-safe pending-notification table.

    - schedule() replaces an entry with the same identifier
    - cancel() ignores identifiers that are unknown or already delivered
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, Notification] = {}

    def schedule(self, identifier: str, fire_at: datetime, title: str, body: str) -> None:
        if not identifier:
            raise ValueError("identifier is required")
        with self._lock:
            replaced = identifier in self._pending
            self._pending[identifier] = Notification(identifier, fire_at, title, body)
        logger.debug("Notification %s %s for %s", identifier, "replaced" if replaced else "scheduled", fire_at)

    def cancel(self, identifiers: Iterable[str]) -> None:
        removed = 0
        with self._lock:
            for identifier in identifiers:
                if self._pending.pop(identifier, None) is not None:
                    removed += 1
        if removed:
            logger.debug("Cancelled %d pending notifications", removed)

    def pending(self) -> list[Notification]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda n: (n.fire_at, n.identifier))

    def pop_due(self, now: datetime) -> list[Notification]:
        """Remove and return everything due at or before now, earliest first."""
        with self._lock:
            due = [n for n in self._pending.values() if n.fire_at <= now]
            for n in due:
                del self._pending[n.identifier]
        due.sort(key=lambda n: (n.fire_at, n.identifier))
        return due


async def run_notification_loop(
    gateway: LocalNotificationGateway,
    notifier: Notifier,
    clock: Clock,
    *,
    interval_seconds: float = 1.0,
) -> None:
    """
    Simple polling delivery loop.

    Every interval_seconds:
    - pop due notifications (fire_at <= now)
    - send each via notifier.send_notification(...)
    A failed send is logged and dropped; the loop keeps running.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            due = gateway.pop_due(clock.now())
        except Exception:
            logger.exception("pop_due failed")
            due = []

        for n in due:
            try:
                await notifier.send_notification(title=n.title, body=n.body)
                logger.info("Notification %s delivered", n.identifier)
            except Exception:
                logger.exception("Notification delivery failed id=%s", n.identifier)

        await asyncio.sleep(sleep_s)


@dataclass(slots=True)
class NotificationBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task[None]

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except Exception:
            logger.debug("Failed to signal notification loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_notifications_in_background(
    gateway: LocalNotificationGateway,
    notifier: Notifier,
    clock: Clock,
    *,
    interval_seconds: float = 1.0,
) -> NotificationBackgroundRunner | None:
    """
    Run the delivery loop on its own event loop in a daemon thread,
    so the blocking console REPL can keep the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_notification_loop(gateway, notifier, clock, interval_seconds=interval_seconds)
        )
        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            with contextlib.suppress(asyncio.CancelledError):
                loop.run_until_complete(task)
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="notifications", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Notification thread did not initialize properly.")
        return None

    logger.info("Notification loop started (interval=%ss).", interval_seconds)
    return NotificationBackgroundRunner(thread=t, loop=loop, task=task)
