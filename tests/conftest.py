# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from recurring_tasks.core.state import AppState
from recurring_tasks.notifications.models import NotificationSettings
from recurring_tasks.notifications.scheduler import NotificationScheduler
from recurring_tasks.notifications.settings_store import NotificationSettingsStore
from recurring_tasks.notifications.state_store import InMemoryNotificationStateStore
from recurring_tasks.tasks.status import StatusClassifier
from recurring_tasks.tasks.task_store import TaskStore

from .fakes import NOW, FakeClock, FakePresenter


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def classifier(clock: FakeClock) -> StatusClassifier:
    return StatusClassifier(clock)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        notification_state_path=tmp_path / "notification_states.json",
        notification_settings_path=tmp_path / "notification_settings.json",
        check_interval_seconds=1800.0,
        due_date_anchor="validation_time",
    )


@pytest.fixture()
def task_store(settings: SimpleNamespace, clock: FakeClock) -> TaskStore:
    return TaskStore(settings.tasks_db_path, clock=clock)


@pytest.fixture()
def settings_store() -> NotificationSettingsStore:
    return NotificationSettingsStore(None)


@pytest.fixture()
def make_scheduler(
    clock: FakeClock, settings_store: NotificationSettingsStore
) -> Callable[..., NotificationScheduler]:
    def _make(
        task_repo,
        presenter: FakePresenter | None = None,
        *,
        state_store: InMemoryNotificationStateStore | None = None,
        notification_settings: NotificationSettings | None = None,
    ) -> NotificationScheduler:
        if notification_settings is not None:
            settings_store.update(**{
                "enabled": notification_settings.enabled,
                "frequency": notification_settings.frequency,
                "show_overdue_only": notification_settings.show_overdue_only,
                "max_notifications_per_task": notification_settings.max_notifications_per_task,
            })
        return NotificationScheduler(
            task_repo,
            settings_store,
            state_store or InMemoryNotificationStateStore(),
            presenter or FakePresenter(),
            clock=clock,
        )

    return _make


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    task_store: TaskStore,
    settings_store: NotificationSettingsStore,
    classifier: StatusClassifier,
    clock: FakeClock,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite TaskStore here because its correctness is part
    of what we want to test.
    """
    presenter = FakePresenter()
    scheduler = NotificationScheduler(
        task_store,
        settings_store,
        InMemoryNotificationStateStore(),
        presenter,
        classifier=classifier,
        clock=clock,
    )
    return AppState(
        settings=settings,
        task_store=task_store,
        settings_store=settings_store,
        classifier=classifier,
        scheduler=scheduler,
        presenter=presenter,
    )
