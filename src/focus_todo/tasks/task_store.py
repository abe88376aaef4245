# src/focus_todo/tasks/task_store.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, tzinfo

from ..core.clock import SystemClock
from ..core.ports import Clock, NotificationGateway, TaskListener, TaskPersistence
from .reminders import build_reminders, cancellation_keys
from .task_models import Task

logger = logging.getLogger(__name__)


def _aware(ts: datetime | None) -> datetime | None:
    # Naive deadlines are taken as local wall-clock time.
    if ts is not None and ts.tzinfo is None:
        return ts.astimezone()
    return ts


class TaskStore:
    """
    Ordered in-memory task list with reminder bookkeeping.

    Every successful mutation:
    - issues reminder cancel/schedule calls to the gateway (cancel first),
    - saves the whole list through the persistence port,
    - notifies listeners with the new ordered snapshot.

    Unknown ids are silent no-ops. Gateway, persistence and listener failures are
    logged and never roll back the in-memory state.

    Thread-safety:
    - all reads and mutations run under one re-entrant lock (single writer)

    The active-linked task is tracked with an explicit pointer next to the per-task
    linked_session_id, kept in sync on every mutation path.
    """

    def __init__(
        self,
        persistence: TaskPersistence,
        gateway: NotificationGateway,
        *,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._persistence = persistence
        self._gateway = gateway
        self._clock: Clock = clock or SystemClock()
        # Zone for "due today"; None means the process' local zone.
        self._tz = tz

        self._lock = threading.RLock()
        self._listeners: list[TaskListener] = []
        self._active_task_id: str | None = None
        self._tasks: list[Task] = self._load()

        self.reconcile()
        logger.info("TaskStore ready total=%d active=%s", len(self._tasks), self._active_task_id)

    # ---- startup ----

    def _load(self) -> list[Task]:
        try:
            tasks = list(self._persistence.load())
        except Exception:
            logger.exception("Failed to load tasks; starting with an empty list.")
            return []

        # Repair link invariants in case the document was edited by hand.
        seen_sessions: set[str] = set()
        for task in tasks:
            sid = task.linked_session_id
            if sid is None:
                continue
            if task.completed or sid in seen_sessions:
                logger.warning("Dropping stale session link on task %s", task.id)
                task.linked_session_id = None
                continue
            seen_sessions.add(sid)
            if self._active_task_id is None:
                self._active_task_id = task.id
        return tasks

    def reconcile(self) -> None:
        """
        Bring the gateway in line with the stored tasks.

        Cancels everything for completed tasks and re-requests schedules for incomplete
        tasks with a future deadline. Safe to call repeatedly: identifiers are
        deterministic, so re-scheduling replaces instead of duplicating.
        """
        with self._lock:
            now = self._clock.now()
            for task in self._tasks:
                if task.completed:
                    self._cancel_reminders(task.id)
            for task in self._tasks:
                if not task.completed:
                    self._schedule_reminders(task, now)

    # ---- listeners ----

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        """Register a callback for list changes. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ---- low-level helpers ----

    def _index(self, task_id: str) -> int | None:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        return None

    def _find(self, task_id: str) -> Task | None:
        idx = self._index(task_id)
        return None if idx is None else self._tasks[idx]

    def _schedule_reminders(self, task: Task, now: datetime) -> None:
        if task.completed or task.due_at is None or task.due_at <= now:
            return
        for req in build_reminders(task.id, task.title, task.due_at, now):
            # Each request on its own: one rejected offset must not stop the rest.
            try:
                self._gateway.schedule(req.identifier, req.fire_at, req.title, req.body)
            except Exception:
                logger.exception("Failed to schedule reminder %s", req.identifier)

    def _cancel_reminders(self, task_id: str) -> None:
        try:
            self._gateway.cancel(cancellation_keys(task_id))
        except Exception:
            logger.exception("Failed to cancel reminders for task %s", task_id)

    def _evict_session(self, session_id: str, *, keep: str) -> None:
        for task in self._tasks:
            if task.id != keep and task.linked_session_id == session_id:
                task.linked_session_id = None
                logger.debug("Session %s unlinked from task %s", session_id, task.id)

    def _commit(self) -> None:
        snapshot = tuple(replace(t) for t in self._tasks)
        try:
            self._persistence.save(snapshot)
        except Exception:
            logger.exception("Failed to save tasks; keeping in-memory state.")
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener failed.")

    # ---- commands ----

    def add(self, title: str, due_at: datetime | None = None) -> Task | None:
        """Create a task at the top of the list. Returns None for an empty title."""
        if not title or not title.strip():
            logger.debug("Rejected task with empty title.")
            return None
        due_at = _aware(due_at)

        with self._lock:
            now = self._clock.now()
            task = Task(title=title.strip(), created_at=now, due_at=due_at)
            self._tasks.insert(0, task)
            self._schedule_reminders(task, now)
            self._commit()
            logger.info("Task added id=%s due_at=%s", task.id, due_at)
            return replace(task)

    def update(self, task: Task) -> None:
        """
        Replace the stored task with the same id (id and created_at are kept).

        Reminders are rescheduled when due_at changes and cancelled when the task
        becomes completed. Link invariants are enforced on the new value.
        """
        if not task.title or not task.title.strip():
            logger.debug("Rejected update of task %s with empty title.", task.id)
            return
        due_at = _aware(task.due_at)

        with self._lock:
            idx = self._index(task.id)
            if idx is None:
                return

            now = self._clock.now()
            old = self._tasks[idx]
            new = replace(
                task, id=old.id, created_at=old.created_at, title=task.title.strip(), due_at=due_at
            )

            if new.completed:
                new.linked_session_id = None
            if new.linked_session_id is not None and new.linked_session_id != old.linked_session_id:
                self._evict_session(new.linked_session_id, keep=new.id)
                self._active_task_id = new.id
            if new.linked_session_id is None and self._active_task_id == new.id:
                self._active_task_id = None

            self._tasks[idx] = new

            due_changed = old.due_at != new.due_at
            if due_changed:
                self._cancel_reminders(new.id)
                self._schedule_reminders(new, now)
            if new.completed and not old.completed:
                self._cancel_reminders(new.id)
            elif old.completed and not new.completed and not due_changed:
                self._schedule_reminders(new, now)

            self._commit()
            logger.debug("Task updated id=%s", new.id)

    def toggle_completion(self, task_id: str) -> None:
        with self._lock:
            task = self._find(task_id)
            if task is None:
                return

            now = self._clock.now()
            task.completed = not task.completed

            if task.completed:
                task.linked_session_id = None
                if self._active_task_id == task_id:
                    self._active_task_id = None
                self._cancel_reminders(task_id)
            else:
                # The previous session link is not restored.
                self._schedule_reminders(task, now)

            self._commit()
            logger.info("Task %s -> %s", task_id, "completed" if task.completed else "open")

    def delete(self, task_id: str) -> None:
        with self._lock:
            idx = self._index(task_id)
            if idx is None:
                return

            self._cancel_reminders(task_id)
            if self._active_task_id == task_id:
                self._active_task_id = None
            del self._tasks[idx]

            self._commit()
            logger.info("Task deleted id=%s", task_id)

    def delete_completed(self) -> None:
        with self._lock:
            done = [t for t in self._tasks if t.completed]
            if not done:
                return

            for task in done:
                self._cancel_reminders(task.id)
                if self._active_task_id == task.id:
                    self._active_task_id = None
            self._tasks = [t for t in self._tasks if not t.completed]

            self._commit()
            logger.info("Deleted %d completed tasks", len(done))

    def move_before(self, from_id: str, to_id: str | None = None) -> None:
        """Move from_id right before to_id; to the end if to_id is None or unknown."""
        with self._lock:
            from_idx = self._index(from_id)
            if from_idx is None:
                return

            task = self._tasks.pop(from_idx)
            to_idx = self._index(to_id) if to_id is not None else None
            if to_idx is None:
                self._tasks.append(task)
            else:
                self._tasks.insert(to_idx, task)

            self._commit()

    def move_up(self, task_id: str) -> None:
        with self._lock:
            idx = self._index(task_id)
            if idx is None or idx == 0:
                return
            self._tasks[idx - 1], self._tasks[idx] = self._tasks[idx], self._tasks[idx - 1]
            self._commit()

    def move_down(self, task_id: str) -> None:
        with self._lock:
            idx = self._index(task_id)
            if idx is None or idx >= len(self._tasks) - 1:
                return
            self._tasks[idx + 1], self._tasks[idx] = self._tasks[idx], self._tasks[idx + 1]
            self._commit()

    def link_to_session(self, task_id: str, session_id: str) -> None:
        """Link a task to a work session, unlinking whichever task held it before."""
        if not session_id:
            return

        with self._lock:
            task = self._find(task_id)
            if task is None:
                return
            if task.completed:
                logger.info("Not linking completed task %s to session %s", task_id, session_id)
                return

            self._evict_session(session_id, keep=task_id)
            task.linked_session_id = session_id
            self._active_task_id = task_id

            self._commit()
            logger.info("Task %s linked to session %s", task_id, session_id)

    def unlink_from_session(self, task_id: str) -> None:
        with self._lock:
            task = self._find(task_id)
            if task is None or task.linked_session_id is None:
                return

            task.linked_session_id = None
            if self._active_task_id == task_id:
                self._active_task_id = None

            self._commit()

    def clear_all_session_links(self) -> None:
        """Drop every session link (the work session ended)."""
        with self._lock:
            for task in self._tasks:
                task.linked_session_id = None
            self._active_task_id = None
            self._commit()

    # ---- queries (copies; callers may mutate and pass back to update) ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return tuple(replace(t) for t in self._tasks)

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            task = self._find(task_id)
            return None if task is None else replace(task)

    @property
    def incomplete(self) -> list[Task]:
        """
        Open tasks: those with a deadline first (earliest first),
        then those without (newest first).
        """
        with self._lock:
            open_tasks = [replace(t) for t in self._tasks if not t.completed]
        with_due = sorted((t for t in open_tasks if t.due_at is not None), key=lambda t: t.due_at)
        without_due = sorted(
            (t for t in open_tasks if t.due_at is None), key=lambda t: t.created_at, reverse=True
        )
        return with_due + without_due

    @property
    def completed(self) -> list[Task]:
        with self._lock:
            return [replace(t) for t in self._tasks if t.completed]

    @property
    def active_task(self) -> Task | None:
        with self._lock:
            if self._active_task_id is None:
                return None
            return self.get(self._active_task_id)

    @property
    def incomplete_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks if not t.completed)

    @property
    def due_today_count(self) -> int:
        with self._lock:
            now = self._clock.now()
            return sum(1 for t in self._tasks if not t.completed and t.is_due_today(now, self._tz))

    @property
    def overdue_count(self) -> int:
        with self._lock:
            now = self._clock.now()
            return sum(1 for t in self._tasks if t.is_overdue(now))
