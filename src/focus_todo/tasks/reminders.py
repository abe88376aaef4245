# src/focus_todo/tasks/reminders.py

from __future__ import annotations

"""
Reminder schedule derivation.

Pure functions only: given a task's id/title/deadline and "now", compute the
notification requests that should be pending for it. No state, no I/O.

Identifiers are derived by reminder_identifier() for both scheduling and
cancellation, so the two sets can never drift apart.

Fire times are exact instants (no truncation to the minute).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

# Minutes before the deadline, descending.
REMINDER_OFFSETS_MINUTES: tuple[int, ...] = (60, 30, 10, 5)

OVERDUE_DELAY = timedelta(seconds=60)


class ReminderKind(StrEnum):
    REMINDER = "todo-reminder"
    DUE = "todo-due"
    OVERDUE = "todo-overdue"


@dataclass(slots=True, frozen=True)
class ReminderRequest:
    """One notification the gateway should deliver at fire_at."""

    identifier: str
    fire_at: datetime
    kind: ReminderKind
    title: str
    body: str
    offset_minutes: int | None = None


def reminder_identifier(kind: ReminderKind, task_id: str, offset_minutes: int | None = None) -> str:
    """
    Deterministic identifier for one reminder slot of a task.

    Kind tags never contain ':' and the offset is always the last segment,
    so different (kind, task_id, offset) triples never map to the same string.
    """
    if kind is ReminderKind.REMINDER:
        if offset_minutes is None:
            raise ValueError("offset reminders need offset_minutes")
        return f"{kind.value}:{task_id}:{int(offset_minutes)}"
    return f"{kind.value}:{task_id}"


def cancellation_keys(task_id: str) -> list[str]:
    """Every identifier a task can ever have scheduled (all offsets + due + overdue)."""
    keys = [reminder_identifier(ReminderKind.REMINDER, task_id, m) for m in REMINDER_OFFSETS_MINUTES]
    keys.append(reminder_identifier(ReminderKind.DUE, task_id))
    keys.append(reminder_identifier(ReminderKind.OVERDUE, task_id))
    return keys


def format_time_remaining(minutes: int) -> str:
    if minutes >= 60:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def build_reminders(task_id: str, title: str, due_at: datetime, now: datetime) -> list[ReminderRequest]:
    """
    Compute the reminder schedule for one task.

    - offset reminders (60/30/10/5 min before) only when their time is still ahead
      of now; missed offsets are dropped, never fired late
    - "due" at exactly due_at, if due_at is in the future
    - "overdue" at due_at + 60s, scheduled together with "due"

    Returns requests ordered by fire time.
    """
    out: list[ReminderRequest] = []

    for minutes in REMINDER_OFFSETS_MINUTES:
        fire_at = due_at - timedelta(minutes=minutes)
        if fire_at <= now:
            continue
        out.append(
            ReminderRequest(
                identifier=reminder_identifier(ReminderKind.REMINDER, task_id, minutes),
                fire_at=fire_at,
                kind=ReminderKind.REMINDER,
                title="Task Reminder",
                body=f"{title}\n{format_time_remaining(minutes)} remaining",
                offset_minutes=minutes,
            )
        )

    if due_at > now:
        out.append(
            ReminderRequest(
                identifier=reminder_identifier(ReminderKind.DUE, task_id),
                fire_at=due_at,
                kind=ReminderKind.DUE,
                title="Task Due Now",
                body=title,
            )
        )
        out.append(
            ReminderRequest(
                identifier=reminder_identifier(ReminderKind.OVERDUE, task_id),
                fire_at=due_at + OVERDUE_DELAY,
                kind=ReminderKind.OVERDUE,
                title="OVERDUE: Task Deadline Exceeded",
                body=f"{title}\nThis task is now past its deadline",
            )
        )

    return out
