# tests/test_bootstrap.py

from __future__ import annotations

import json
import logging
import runpy
from dataclasses import fields
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from recurring_tasks.cli.bootstrap import create_initial_state
from recurring_tasks.cli.commands import registry
from recurring_tasks.config import ENV_PREFIX, Settings
from recurring_tasks.core.loop_runner import start_scheduler_in_background
from recurring_tasks.logging_setup import _ConsoleNoiseFilter, level_from_name
from recurring_tasks.notifications.models import NotificationFrequency
from recurring_tasks.tasks.periodicity import DueDateAnchor
from recurring_tasks.tasks.task_models import WEEKLY

from .fakes import FakePresenter

REPO_ROOT = Path(__file__).resolve().parents[1]


def _settings(tmp_path: Path, **overrides) -> SimpleNamespace:
    base = dict(
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
        notification_state_path=tmp_path / "data" / "notification_states.json",
        notification_settings_path=tmp_path / "data" / "notification_settings.json",
        check_interval_seconds=3600.0,
        due_date_anchor="previous_due_date",
        notifications_enabled=True,
        notification_frequency="daily",
        show_overdue_only=False,
        max_notifications_per_task=3,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RTASKS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("RTASKS_CHECK_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("RTASKS_NOTIFICATION_FREQUENCY", " Daily ")
    monkeypatch.setenv("RTASKS_SHOW_OVERDUE_ONLY", "yes")
    monkeypatch.setenv("RTASKS_MAX_NOTIFICATIONS_PER_TASK", "not a number")
    monkeypatch.setenv("RTASKS_DUE_DATE_ANCHOR", "whenever")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.check_interval_seconds == 1.0
    assert s.notification_frequency == "daily"
    assert s.show_overdue_only is True
    assert s.max_notifications_per_task == 5
    assert s.due_date_anchor == "validation_time"


def test_documented_env_vars_match_settings() -> None:
    documented = runpy.run_path(str(REPO_ROOT / "config.example.py"))["ENV_VARS"]
    expected = {f"{ENV_PREFIX}_{f.name.upper()}" for f in fields(Settings)}
    assert set(documented) == expected


def test_create_initial_state_wires_settings(tmp_path: Path) -> None:
    state = create_initial_state(settings=_settings(tmp_path), presenter=FakePresenter())

    assert state.settings.data_dir.is_dir()
    assert state.task_store.anchor == DueDateAnchor.PREVIOUS_DUE_DATE
    current = state.settings_store.get()
    assert current.frequency == NotificationFrequency.DAILY
    assert current.max_notifications_per_task == 3


def test_settings_file_wins_over_env_defaults(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    settings.notification_settings_path.parent.mkdir(parents=True)
    settings.notification_settings_path.write_text(json.dumps({"frequency": "immediate"}), "utf-8")

    state = create_initial_state(settings=settings, presenter=FakePresenter())
    current = state.settings_store.get()
    assert current.frequency == NotificationFrequency.IMMEDIATE
    # Keys missing from the file keep the configured defaults.
    assert current.max_notifications_per_task == 3


def test_background_runner_serves_commands(tmp_path: Path) -> None:
    state = create_initial_state(settings=_settings(tmp_path), presenter=FakePresenter())
    task = state.task_store.add_task(
        title="Water plants",
        periodicity=WEEKLY,
        due_date=state.classifier.now() - timedelta(days=1),
    )

    runner = start_scheduler_in_background(state)
    assert runner is not None
    try:
        reply = runner.call(registry.handle, state, "/check")
        assert reply == "Check completed: 1 reminder(s) sent."
        assert runner.call(state.scheduler.get_state, task.id) is not None
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()
    saved = json.loads(state.settings.notification_state_path.read_text("utf-8"))
    assert saved[task.id]["notificationCount"] == 1


@pytest.mark.parametrize(
    "name, level, shown",
    [
        ("recurring_tasks.tasks.task_store", logging.INFO, True),
        ("recurring_tasks.core.loop_runner", logging.INFO, False),
        ("recurring_tasks_other", logging.WARNING, False),
        ("recurring_tasks.notifications.scheduler", logging.INFO, False),
        ("recurring_tasks.notifications.scheduler", logging.WARNING, True),
        ("asyncio", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
    ],
)
def test_console_noise_filter(name: str, level: int, shown: bool) -> None:
    record = logging.LogRecord(name, level, __file__, 1, "msg", None, None)
    assert _ConsoleNoiseFilter().filter(record) is shown


@pytest.mark.parametrize(
    "raw, expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("15", 15), ("chatty", logging.INFO), (None, logging.INFO)],
)
def test_level_from_name(raw, expected) -> None:
    assert level_from_name(raw) == expected
