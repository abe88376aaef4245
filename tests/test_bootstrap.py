# tests/test_bootstrap.py

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from focus_todo.cli.bootstrap import create_initial_state
from focus_todo.config import Settings
from focus_todo.core.session import SessionPhase, WorkSession
from focus_todo.logging_setup import _ConsoleNoiseFilter, setup_logging
from focus_todo.tasks.reminders import cancellation_keys

from .fakes import NOON, ManualClock


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("FOCUS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FOCUS_CONSOLE_ENABLED", "no")
    monkeypatch.setenv("FOCUS_NOTIFY_INTERVAL_SECONDS", "not-a-number")
    monkeypatch.delenv("FOCUS_TASKS_PATH", raising=False)

    s = Settings.from_env()

    assert s.data_dir == tmp_path
    assert s.tasks_path == tmp_path / "todos.json"
    assert s.console_enabled is False
    assert s.notify_interval_seconds == 1.0


def test_bootstrap_reschedules_persisted_deadlines(settings) -> None:
    clock = ManualClock()
    first = create_initial_state(settings=settings, clock=clock)
    task = first.task_store.add("report", NOON + timedelta(hours=2))
    assert task is not None

    # Fresh process: new gateway, same file.
    second = create_initial_state(settings=settings, clock=clock)

    assert [t.id for t in second.task_store.tasks] == [task.id]
    assert {n.identifier for n in second.gateway.pending()} == set(cancellation_keys(task.id))


def test_work_session_phases() -> None:
    session = WorkSession()
    assert not session.is_active
    session.start_rest()
    assert session.phase is SessionPhase.IDLE

    sid = session.start_work()
    assert session.session_id == sid
    session.start_rest()
    assert session.phase is SessionPhase.REST

    assert session.end() == sid
    assert session.phase is SessionPhase.IDLE
    assert session.end() is None


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        setup_logging(log_dir=tmp_path)
        logging.getLogger("focus_todo.test").info("hello")
        for h in root.handlers:
            h.flush()
        assert "hello" in (tmp_path / "focus_todo.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved:
            root.addHandler(h)


def test_console_filter_quiets_background_and_third_party_logs() -> None:
    f = _ConsoleNoiseFilter()

    def rec(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 0, "msg", None, None)

    assert f.filter(rec("focus_todo.tasks.task_store", logging.INFO))
    assert not f.filter(rec("focus_todo.notifications.local_gateway", logging.INFO))
    assert f.filter(rec("focus_todo.notifications.local_gateway", logging.WARNING))
    assert not f.filter(rec("py.warnings", logging.WARNING))
    assert not f.filter(rec("asyncio", logging.WARNING))
    assert f.filter(rec("asyncio", logging.ERROR))
