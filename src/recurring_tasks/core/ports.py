# src/recurring_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the notification scheduler.

The scheduler depends on Protocols instead of concrete implementations, so the
task store, settings, persistence and presentation stay swappable and the
scheduler never imports the presentation layer.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..notifications.models import NotificationSettings, NotificationState, Reminder, ReminderAction
    from ..tasks.task_models import Task


class TaskRepo(Protocol):
    def list_active_tasks(self) -> list[Task]: ...
    def get_task(self, task_id: str) -> Task | None: ...
    def validate_task(self, task_id: str, comment_text: str = "") -> Task | None: ...


class SettingsRepo(Protocol):
    def get(self) -> NotificationSettings: ...
    def set_enabled(self, enabled: bool) -> NotificationSettings: ...
    def subscribe(self, listener: Callable[[NotificationSettings], None]) -> Callable[[], None]: ...


class NotificationStateRepo(Protocol):
    def load_all(self) -> dict[str, NotificationState]: ...
    def save_all(self, states: dict[str, NotificationState]) -> None: ...


class ReminderPresenter(Protocol):
    """
    UI-side port.

    present_reminder may stay pending for as long as the user takes to answer;
    the scheduler never waits on it during a sweep. None means dismissed.
    """

    async def present_reminder(self, reminder: Reminder) -> ReminderAction | None: ...

    async def show_task_details(self, task: Task) -> None: ...

    async def prompt_validation_comment(self, task: Task) -> str | None: ...
