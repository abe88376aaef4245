# tests/test_local_gateway.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from focus_todo.notifications.local_gateway import LocalNotificationGateway, run_notification_loop
from focus_todo.tasks.task_store import TaskStore

from .fakes import NOON, FakeNotifier, ManualClock, MemoryPersistence


def test_schedule_replaces_by_identifier() -> None:
    gw = LocalNotificationGateway()
    gw.schedule("x", NOON, "t", "first")
    gw.schedule("x", NOON + timedelta(minutes=1), "t", "second")

    pending = gw.pending()
    assert len(pending) == 1
    assert pending[0].body == "second"


def test_cancel_unknown_or_delivered_is_noop() -> None:
    gw = LocalNotificationGateway()
    gw.schedule("x", NOON, "t", "b")
    assert [n.identifier for n in gw.pop_due(NOON)] == ["x"]

    gw.cancel(["x", "never-scheduled"])
    assert gw.pending() == []


def test_pop_due_returns_earliest_first_and_only_once() -> None:
    gw = LocalNotificationGateway()
    gw.schedule("late", NOON + timedelta(minutes=5), "t", "b")
    gw.schedule("b", NOON - timedelta(minutes=1), "t", "b")
    gw.schedule("a", NOON - timedelta(minutes=2), "t", "b")

    assert [n.identifier for n in gw.pop_due(NOON)] == ["a", "b"]
    assert gw.pop_due(NOON) == []
    assert [n.identifier for n in gw.pending()] == ["late"]


def test_task_store_drives_gateway_through_reschedule_and_delete() -> None:
    clock = ManualClock()
    gw = LocalNotificationGateway()
    store = TaskStore(MemoryPersistence(), gw, clock=clock)

    task = store.add("report", NOON + timedelta(minutes=90))
    assert task is not None
    assert len(gw.pending()) == 6

    store.add("report", NOON + timedelta(minutes=90))
    assert len(gw.pending()) == 12

    store.delete(task.id)
    assert len(gw.pending()) == 6

    store.reconcile()
    store.reconcile()
    assert len(gw.pending()) == 6


@pytest.mark.asyncio
async def test_loop_delivers_due_notifications_once() -> None:
    clock = ManualClock()
    gw = LocalNotificationGateway()
    notifier = FakeNotifier()
    gw.schedule("now", NOON, "Task Due Now", "report")
    gw.schedule("later", NOON + timedelta(hours=1), "Task Reminder", "later")

    runner = asyncio.create_task(run_notification_loop(gw, notifier, clock, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert [n.body for n in notifier.sent] == ["report"]
    assert [n.identifier for n in gw.pending()] == ["later"]


@pytest.mark.asyncio
async def test_loop_survives_notifier_failure() -> None:
    clock = ManualClock()
    gw = LocalNotificationGateway()
    notifier = FakeNotifier(fail_titles={"boom"})
    gw.schedule("a", NOON - timedelta(seconds=2), "boom", "first")
    gw.schedule("b", NOON - timedelta(seconds=1), "ok", "second")

    runner = asyncio.create_task(run_notification_loop(gw, notifier, clock, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert [n.body for n in notifier.sent] == ["second"]
    assert gw.pending() == []
