# src/recurring_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..notifications.scheduler import NotificationScheduler
from ..notifications.settings_store import NotificationSettingsStore
from ..tasks.status import StatusClassifier
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings are kept on the state so commands can read paths/intervals.
    settings: Any

    task_store: TaskStore
    settings_store: NotificationSettingsStore
    classifier: StatusClassifier
    scheduler: NotificationScheduler

    # Connector-side presenter (ConsolePresenter in the CLI); typed loosely to
    # keep core free of presentation imports.
    presenter: Any = None
