# tests/test_commands.py

from __future__ import annotations

import asyncio
import io
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from recurring_tasks.cli.commands import CommandRegistry, parse_due, registry
from recurring_tasks.connectors.console_connector import ConsolePresenter
from recurring_tasks.core.state import AppState
from recurring_tasks.notifications.models import NotificationFrequency
from recurring_tasks.notifications.scheduler import NotificationScheduler
from recurring_tasks.notifications.state_store import InMemoryNotificationStateStore
from recurring_tasks.tasks.task_models import ONE_SHOT, WEEKLY, TaskStatus

from .fakes import NOW


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("a", handler, "a", aliases=["alpha"])

    assert reg.handle(state, "/a x y") == "ok"
    assert reg.handle(state, "/ALPHA") == "ok"
    assert called == [["x", "y"], []]
    assert "/a - a" in reg.build_help()


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    reply = registry.handle(state, "/help") or ""
    for name in ("/add", "/validate", "/reactivate", "/settings", "/answer"):
        assert name in reply


def test_parse_due_date_only_means_end_of_day() -> None:
    assert parse_due("2026-03-12", NOW) == datetime(2026, 3, 12, 23, 59, tzinfo=timezone.utc)
    assert parse_due("2026-03-12T08:30", NOW) == datetime(2026, 3, 12, 8, 30, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        parse_due("next tuesday", NOW)


def test_add_and_list_tasks(state: AppState) -> None:
    reply = registry.handle(state, "/add Water plants | weekly | 2026-03-12 | balcony ones") or ""
    assert reply.startswith("Added task")
    assert "due in 2 days" in reply

    task = state.task_store.list_active_tasks()[0]
    assert task.periodicity == WEEKLY
    assert task.description == "balcony ones"

    listing = registry.handle(state, "/ls") or ""
    assert task.id[:8] in listing
    assert "Water plants" in listing


def test_add_rejects_bad_input(state: AppState) -> None:
    assert (registry.handle(state, "/add only a title") or "").startswith("Usage")
    assert (registry.handle(state, "/add Walk | sometimes | 2026-03-12") or "").startswith("Invalid task")
    assert state.task_store.count_tasks() == 0


def test_validate_by_id_prefix(state: AppState) -> None:
    one_shot = state.task_store.add_task(title="Renew passport", periodicity=ONE_SHOT, due_date=NOW)
    weekly = state.task_store.add_task(title="Water plants", periodicity=WEEKLY, due_date=NOW)

    reply = registry.handle(state, f"/validate {one_shot.id[:8]} finally done") or ""
    assert reply == 'Task "Renew passport" completed and archived.'
    assert state.task_store.get_task(one_shot.id).comments[-1].text == "finally done"

    reply = registry.handle(state, f"/validate {weekly.id}") or ""
    assert "next due 2026-03-17T12:00" in reply

    assert registry.handle(state, "/validate nope") == "Task nope not found."


def test_validate_refuses_archived_task(state: AppState) -> None:
    task = state.task_store.add_task(title="Water plants", periodicity=WEEKLY, due_date=NOW)
    state.task_store.archive_task(task.id)

    reply = registry.handle(state, f"/validate {task.id}") or ""
    assert "not active" in reply

    stored = state.task_store.get_task(task.id)
    assert stored.due_date == NOW
    assert stored.comments == []
    assert stored.status == TaskStatus.ARCHIVED


def test_archive_unarchive_delete_and_show(state: AppState) -> None:
    task = state.task_store.add_task(title="Clean gutters", periodicity=WEEKLY, due_date=NOW + timedelta(days=1))

    assert "archived" in (registry.handle(state, f"/archive {task.id}") or "")
    assert task.id[:8] in (registry.handle(state, "/archived") or "")
    assert "active again" in (registry.handle(state, f"/unarchive {task.id}") or "")

    registry.handle(state, f"/comment {task.id} ladder in garage")
    details = registry.handle(state, f"/show {task.id}") or ""
    assert "Clean gutters" in details
    assert "ladder in garage" in details

    assert "deleted" in (registry.handle(state, f"/delete {task.id}") or "")
    assert state.task_store.get_task(task.id) is None


def test_settings_command(state: AppState) -> None:
    reply = registry.handle(state, "/settings frequency daily") or ""
    assert "frequency:     daily" in reply
    assert state.settings_store.get().frequency == NotificationFrequency.DAILY

    registry.handle(state, "/settings overdue-only yes")
    registry.handle(state, "/settings max 0")
    current = state.settings_store.get()
    assert current.show_overdue_only is True
    assert current.max_notifications_per_task == 1

    assert "Unknown setting" in (registry.handle(state, "/settings volume 11") or "")

    reply = registry.handle(state, "/settings frequency bogus") or ""
    assert reply.startswith("Unknown frequency bogus")
    assert state.settings_store.get().frequency == NotificationFrequency.DAILY


def test_reactivate_and_stats(state: AppState) -> None:
    task = state.task_store.add_task(title="Water plants", periodicity=WEEKLY, due_date=NOW)

    reply = registry.handle(state, f"/reactivate {task.id}") or ""
    assert reply == 'Notifications for "Water plants" are already active.'
    assert registry.handle(state, "/reactivate nope") == "Task not found or is not active."

    stats = registry.handle(state, "/stats") or ""
    assert "Active tasks:        1" in stats


def test_export_import_round_trip(state: AppState, tmp_path: Path) -> None:
    state.task_store.add_task(title="Water plants", periodicity=WEEKLY, due_date=NOW)
    out = tmp_path / "export.json"

    assert registry.handle(state, f"/export {out}") == f"Exported to: {out}"
    reply = registry.handle(state, f"/import {out}") or ""

    assert reply.startswith("Successfully imported 1 task")
    assert "Duplicate ID" in reply
    assert state.task_store.count_tasks() == 2
    assert (registry.handle(state, f"/import {tmp_path / 'missing.json'}") or "").startswith("Import failed")


@pytest.mark.asyncio
async def test_check_then_answer_through_console_presenter(state: AppState, clock) -> None:
    out = io.StringIO()
    presenter = ConsolePresenter(state.classifier, out=out)
    scheduler = NotificationScheduler(
        state.task_store,
        state.settings_store,
        InMemoryNotificationStateStore(),
        presenter,
        classifier=state.classifier,
        clock=clock,
    )
    scheduler.on_state_changed(presenter.on_event)
    console_state = AppState(
        settings=state.settings,
        task_store=state.task_store,
        settings_store=state.settings_store,
        classifier=state.classifier,
        scheduler=scheduler,
        presenter=presenter,
    )
    task = state.task_store.add_task(title="Renew passport", periodicity=ONE_SHOT, due_date=NOW - timedelta(days=1))

    assert registry.handle(console_state, "/check") == "Check completed: 1 reminder(s) sent."
    await asyncio.sleep(0)
    assert "[REMINDER #1] OVERDUE: Renew passport" in out.getvalue()
    assert list(presenter.open_prompts) == [1]

    assert registry.handle(console_state, "/answer 2 validate") == "No open reminder #2."
    assert registry.handle(console_state, "/answer 1 v all good") == "Reminder #1: validate."
    for _ in range(5):
        await asyncio.sleep(0)

    stored = state.task_store.get_task(task.id)
    assert stored.status == TaskStatus.ARCHIVED
    assert stored.comments[-1].text == "all good"
    assert presenter.open_prompts == {}
    assert 'Task "Renew passport" validated successfully!' in out.getvalue()

    await scheduler.stop()
