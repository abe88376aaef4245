# src/focus_todo/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any

DUE_SOON_WINDOW = timedelta(hours=1)


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Task:
    """
    A to-do item.

    Notes:
    - id and created_at are fixed at creation; TaskStore.update keeps the stored ones.
    - due_at may be earlier than created_at (tasks can be entered late).
    - linked_session_id references an external work session; at most one task holds a
      given session id, and completed tasks never hold one.
    """

    title: str
    created_at: datetime
    id: str = field(default_factory=new_task_id)
    completed: bool = False
    due_at: datetime | None = None
    linked_session_id: str | None = None

    def is_overdue(self, now: datetime) -> bool:
        if self.due_at is None or self.completed:
            return False
        return self.due_at < now

    def is_due_today(self, now: datetime, tz: tzinfo | None = None) -> bool:
        """True if due_at falls on the same local calendar day as now."""
        if self.due_at is None:
            return False
        return self.due_at.astimezone(tz).date() == now.astimezone(tz).date()

    def is_due_soon(self, now: datetime) -> bool:
        if self.due_at is None or self.completed:
            return False
        return now < self.due_at <= now + DUE_SOON_WINDOW

    # ---- document mapping ----

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "created_at": _ts_to_str(self.created_at),
        }
        if self.due_at is not None:
            out["due_at"] = _ts_to_str(self.due_at)
        if self.linked_session_id is not None:
            out["linked_session_id"] = self.linked_session_id
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        """Strict decode: missing or mistyped required fields raise ValueError."""
        task_id = raw.get("id")
        title = raw.get("title")
        completed = raw.get("completed", False)
        if not isinstance(task_id, str) or not task_id:
            raise ValueError(f"task id must be a non-empty string, got {task_id!r}")
        if not isinstance(title, str):
            raise ValueError(f"task {task_id}: title must be a string")
        if not isinstance(completed, bool):
            raise ValueError(f"task {task_id}: completed must be a boolean")

        due_raw = raw.get("due_at")
        link = raw.get("linked_session_id")
        if link is not None and not isinstance(link, str):
            raise ValueError(f"task {task_id}: linked_session_id must be a string")

        return cls(
            id=task_id,
            title=title,
            completed=completed,
            created_at=_str_to_ts(raw.get("created_at")),
            due_at=_str_to_ts(due_raw) if due_raw is not None else None,
            linked_session_id=link,
        )


def _ts_to_str(ts: datetime) -> str:
    # isoformat keeps microseconds and the UTC offset, so decoding is lossless.
    return ts.isoformat()


def _str_to_ts(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be an ISO 8601 string, got {raw!r}")
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        raise ValueError(f"timestamp without UTC offset: {raw!r}")
    return ts
