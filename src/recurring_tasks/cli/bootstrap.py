# src/recurring_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete stores, the classifier, the presenter and the scheduler into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsolePresenter
from ..core.ports import ReminderPresenter
from ..core.state import AppState
from ..notifications.models import NotificationSettings
from ..notifications.scheduler import NotificationScheduler
from ..notifications.settings_store import NotificationSettingsStore
from ..notifications.state_store import JsonNotificationStateStore
from ..tasks.periodicity import DueDateAnchor
from ..tasks.status import StatusClassifier
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.notification_state_path.parent.mkdir(parents=True, exist_ok=True)
    settings.notification_settings_path.parent.mkdir(parents=True, exist_ok=True)


def default_notification_settings(settings) -> NotificationSettings:
    return NotificationSettings.from_dict(
        {
            "enabled": settings.notifications_enabled,
            "frequency": settings.notification_frequency,
            "showOverdueOnly": settings.show_overdue_only,
            "maxNotificationsPerTask": settings.max_notifications_per_task,
        }
    )


def create_initial_state(*, settings=None, presenter: ReminderPresenter | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). If presenter is None, a ConsolePresenter is used.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    anchor = DueDateAnchor.parse(getattr(settings, "due_date_anchor", None))
    classifier = StatusClassifier()
    task_store = TaskStore(settings.tasks_db_path, anchor=anchor)
    settings_store = NotificationSettingsStore(
        settings.notification_settings_path,
        defaults=default_notification_settings(settings),
    )

    if presenter is None:
        presenter = ConsolePresenter(classifier)

    scheduler = NotificationScheduler(
        task_store,
        settings_store,
        JsonNotificationStateStore(settings.notification_state_path),
        presenter,
        classifier=classifier,
        check_interval_seconds=settings.check_interval_seconds,
    )

    on_event = getattr(presenter, "on_event", None)
    if callable(on_event):
        scheduler.on_state_changed(on_event)

    return AppState(
        settings=settings,
        task_store=task_store,
        settings_store=settings_store,
        classifier=classifier,
        scheduler=scheduler,
        presenter=presenter,
    )
