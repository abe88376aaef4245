# tests/test_commands.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from focus_todo.cli.commands import CommandRegistry, parse_when, registry

from .fakes import NOON


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called = {"a": 0}

    def handler(state, args):
        called["a"] += 1
        return " ".join(args)

    reg.register("a", handler, "a", aliases=["alpha"])

    assert reg.handle(state, "/a x y") == "x y"
    assert reg.handle(state, "/ALPHA z") == "z"
    assert called["a"] == 2


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_parse_when() -> None:
    assert parse_when("+30m", NOON) == NOON + timedelta(minutes=30)
    assert parse_when("+2h", NOON) == NOON + timedelta(hours=2)
    assert parse_when("2026-03-11T09:15:00+00:00", NOON) == datetime(2026, 3, 11, 9, 15, tzinfo=UTC)
    assert parse_when("2026-03-11T09:15", NOON).tzinfo is not None


def test_add_list_done_flow(state) -> None:
    assert registry.handle(state, "/add write report @ +90m").startswith("Added: write report")
    registry.handle(state, "/add buy milk")

    listing = registry.handle(state, "/list")
    assert "1. [ ] buy milk" in listing
    assert "2. [ ] write report (due" in listing
    assert len(state.gateway.pending()) == 6

    assert registry.handle(state, "/done 2") == "Completed: write report"
    assert state.gateway.pending() == []
    assert registry.handle(state, "/done 2") == "Reopened: write report"
    assert len(state.gateway.pending()) == 6


def test_add_rejects_blank_and_bad_deadline(state) -> None:
    assert registry.handle(state, "/add") == "Task title must not be empty."
    assert registry.handle(state, "/add x @ someday").startswith("Cannot parse deadline")
    assert state.task_store.tasks == ()


def test_due_and_edit(state) -> None:
    registry.handle(state, "/add report")
    assert registry.handle(state, "/due 1 +3m").startswith("Task #1 due")
    # 3 minutes out: due + overdue only.
    assert len(state.gateway.pending()) == 2

    registry.handle(state, "/due 1 none")
    assert state.gateway.pending() == []

    registry.handle(state, "/edit 1 final report")
    assert state.task_store.tasks[0].title == "final report"


def test_session_link_flow(state) -> None:
    registry.handle(state, "/add a")
    registry.handle(state, "/add b")

    assert "No work session" in registry.handle(state, "/link 1")
    registry.handle(state, "/start")
    registry.handle(state, "/link 1")
    registry.handle(state, "/link 2")

    tasks = state.task_store.tasks
    assert tasks[0].linked_session_id is None
    assert tasks[1].linked_session_id == state.session.session_id
    assert state.task_store.active_task.title == "a"
    assert "Active task: a" in registry.handle(state, "/stats")

    registry.handle(state, "/stop")
    assert all(t.linked_session_id is None for t in state.task_store.tasks)
    assert state.task_store.active_task is None


def test_reorder_and_clear(state) -> None:
    for title in ("c", "b", "a"):
        registry.handle(state, f"/add {title}")

    registry.handle(state, "/move 1 end")
    assert [t.title for t in state.task_store.tasks] == ["b", "c", "a"]
    registry.handle(state, "/up 3")
    assert [t.title for t in state.task_store.tasks] == ["b", "a", "c"]

    registry.handle(state, "/done 1")
    assert registry.handle(state, "/clear") == "Removed 1 completed task(s)."
    assert [t.title for t in state.task_store.tasks] == ["a", "c"]
    assert "No task #9" in registry.handle(state, "/del 9")


def test_persisted_file_follows_commands(state) -> None:
    registry.handle(state, "/add a")
    registry.handle(state, "/add b")
    registry.handle(state, "/down 1")

    raw = state.settings.tasks_path.read_text("utf-8")
    assert raw.index('"a"') < raw.index('"b"')
