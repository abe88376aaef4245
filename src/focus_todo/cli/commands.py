# src/focus_todo/cli/commands.py

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta

from ..core.state import AppState
from ..tasks.task_models import Task

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

_RELATIVE_RE = re.compile(r"^\+(\d+)([mh])$", re.IGNORECASE)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def parse_when(raw: str, now: datetime) -> datetime:
    """
    Parse a deadline argument.

    Accepts "+<n>m", "+<n>h" (relative to now) or an ISO 8601 datetime.
    Naive datetimes are taken as local time.
    """
    m = _RELATIVE_RE.match(raw.strip())
    if m:
        amount = int(m.group(1))
        unit = m.group(2).lower()
        delta = timedelta(minutes=amount) if unit == "m" else timedelta(hours=amount)
        return now + delta

    ts = datetime.fromisoformat(raw.strip())
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts


def _pick_task(state: AppState, raw: str) -> Task | None:
    """Resolve a 1-based position in stored order."""
    try:
        pos = int(raw)
    except ValueError:
        return None
    tasks = state.task_store.tasks
    if pos < 1 or pos > len(tasks):
        return None
    return tasks[pos - 1]


def _fmt_due(ts: datetime) -> str:
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def format_task_line(pos: int, task: Task, now: datetime, active_id: str | None) -> str:
    mark = "x" if task.completed else " "
    line = f"{pos}. [{mark}] {task.title}"
    if task.due_at is not None:
        line += f" (due {_fmt_due(task.due_at)})"
        if task.is_overdue(now):
            line += " OVERDUE"
        elif task.is_due_soon(now):
            line += " soon"
    if task.id == active_id:
        line += " <- active"
    return line


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.tasks
    if not tasks:
        return "No tasks. Add one with /add <title>."
    now = state.clock.now()
    active = state.task_store.active_task
    active_id = active.id if active else None
    lines = ["Tasks:"]
    for i, task in enumerate(tasks, start=1):
        lines.append("  " + format_task_line(i, task, now, active_id))
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add buy milk           -> no deadline
    /add buy milk @ +30m    -> due in 30 minutes
    """
    due_at: datetime | None = None
    title_parts = args
    if "@" in args:
        at = args.index("@")
        title_parts = args[:at]
        when = " ".join(args[at + 1 :])
        if not when:
            return "Usage: /add <title> [@ +30m | +2h | 2026-01-31T18:00]"
        try:
            due_at = parse_when(when, state.clock.now())
        except ValueError:
            logger.debug("Unparseable deadline %r", when)
            return f"Cannot parse deadline: {when}"

    task = state.task_store.add(" ".join(title_parts), due_at)
    if task is None:
        return "Task title must not be empty."
    return f"Added: {task.title}" + (f" (due {_fmt_due(due_at)})" if due_at else "")


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <n>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    state.task_store.toggle_completion(task.id)
    return f"{'Reopened' if task.completed else 'Completed'}: {task.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <n> <new title>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    task.title = " ".join(args[1:])
    state.task_store.update(task)
    return f"Renamed task #{args[0]}."


def cmd_due(state: AppState, args: list[str]) -> str:
    """
    /due <n> +15m   -> set deadline
    /due <n> none   -> remove deadline
    """
    if len(args) < 2:
        return "Usage: /due <n> <+30m | +2h | ISO datetime | none>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."

    when = " ".join(args[1:])
    if when.lower() == "none":
        task.due_at = None
    else:
        try:
            task.due_at = parse_when(when, state.clock.now())
        except ValueError:
            logger.debug("Unparseable deadline %r", when)
            return f"Cannot parse deadline: {when}"

    state.task_store.update(task)
    if task.due_at is None:
        return f"Deadline removed from task #{args[0]}."
    return f"Task #{args[0]} due {_fmt_due(task.due_at)}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <n>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    state.task_store.delete(task.id)
    return f"Deleted: {task.title}"


def cmd_clear(state: AppState, args: list[str]) -> str:
    n = len(state.task_store.completed)
    state.task_store.delete_completed()
    return f"Removed {n} completed task(s)."


def cmd_up(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /up <n>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    state.task_store.move_up(task.id)
    return cmd_list(state, [])


def cmd_down(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /down <n>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    state.task_store.move_down(task.id)
    return cmd_list(state, [])


def cmd_move(state: AppState, args: list[str]) -> str:
    """
    /move 3 1     -> put task #3 right before task #1
    /move 1 end   -> put task #1 at the end
    """
    if len(args) < 2:
        return "Usage: /move <n> <m|end>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."

    target_id: str | None = None
    if args[1].lower() != "end":
        target = _pick_task(state, args[1])
        if target is None:
            return f"No task #{args[1]}."
        target_id = target.id

    state.task_store.move_before(task.id, target_id)
    return cmd_list(state, [])


def cmd_start(state: AppState, args: list[str]) -> str:
    if state.session.is_active:
        return "A work session is already running."
    state.session.start_work()
    return "Work session started. Link a task with /link <n>."


def cmd_stop(state: AppState, args: list[str]) -> str:
    if state.session.end() is None:
        return "No work session is running."
    state.task_store.clear_all_session_links()
    return "Work session ended. Task links cleared."


def cmd_link(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /link <n>"
    session_id = state.session.session_id
    if session_id is None:
        return "No work session is running. Use /start first."
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    if task.completed:
        return "Completed tasks cannot be linked."
    state.task_store.link_to_session(task.id, session_id)
    return f"Working on: {task.title}"


def cmd_unlink(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unlink <n>"
    task = _pick_task(state, args[0])
    if task is None:
        return f"No task #{args[0]}."
    state.task_store.unlink_from_session(task.id)
    return f"Unlinked: {task.title}"


def cmd_stats(state: AppState, args: list[str]) -> str:
    store = state.task_store
    active = store.active_task
    return (
        "Stats:\n"
        f"  Open: {store.incomplete_count}\n"
        f"  Due today: {store.due_today_count}\n"
        f"  Overdue: {store.overdue_count}\n"
        f"  Pending notifications: {len(state.gateway.pending())}\n"
        f"  Session: {state.session.phase.value}\n"
        f"  Active task: {active.title if active else '-'}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks in stored order.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [@ +30m | +2h | ISO datetime].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <n> <title>.")
registry.register("due", cmd_due, help_text="Set or clear a deadline: /due <n> <when|none>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <n>.", aliases=["rm"])
registry.register("clear", cmd_clear, help_text="Delete all completed tasks.")
registry.register("up", cmd_up, help_text="Move a task up: /up <n>.")
registry.register("down", cmd_down, help_text="Move a task down: /down <n>.")
registry.register("move", cmd_move, help_text="Move a task before another: /move <n> <m|end>.")
registry.register("start", cmd_start, help_text="Start a work session.")
registry.register("stop", cmd_stop, help_text="End the work session and clear task links.")
registry.register("link", cmd_link, help_text="Link a task to the running work session: /link <n>.")
registry.register("unlink", cmd_unlink, help_text="Unlink a task: /unlink <n>.")
registry.register("stats", cmd_stats, help_text="Show counts (open / due today / overdue).")
