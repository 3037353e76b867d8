# src/recurring_tasks/notifications/scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A small polling loop that, every check interval:
- lists active tasks,
- picks the ones that are overdue or due today,
- applies the throttle / max-count policy per task,
- hands reminders to an injected presenter without waiting for the answer,
- persists the per-task notification state map.

Everything runs on one event loop. Several reminders can be waiting for the
user at the same time; their answers are handled whenever they arrive.

Per-task lifecycle: no state (never reminded) -> state with count < max ->
count >= max (silent until reactivated). A snooze is not a separate state: it
moves last_notification_time into the future so the throttle check fails
until the clock catches up.
"""

import asyncio
import contextlib
import logging
import math
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from ..core.ports import NotificationStateRepo, ReminderPresenter, SettingsRepo, TaskRepo
from ..tasks.status import Clock, StatusClassifier, calendar_day, local_now, same_calendar_day
from ..tasks.task_models import Task
from .models import (
    EventKind,
    NotificationEvent,
    NotificationSettings,
    NotificationState,
    NotificationStats,
    ReactivationResult,
    Reminder,
    ReminderAction,
    format_snooze_duration,
    snooze_duration,
    throttle_window,
)

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 30 * 60

StateListener = Callable[[NotificationEvent], None]


class NotificationScheduler:
    def __init__(
        self,
        task_store: TaskRepo,
        settings_store: SettingsRepo,
        state_store: NotificationStateRepo,
        presenter: ReminderPresenter,
        *,
        classifier: StatusClassifier | None = None,
        clock: Clock | None = None,
        check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
    ) -> None:
        self._task_store = task_store
        self._settings_store = settings_store
        self._state_store = state_store
        self._presenter = presenter

        self._clock: Clock = clock or local_now
        self._classifier = classifier or StatusClassifier(self._clock)
        self._interval = max(0.01, float(check_interval_seconds))

        # Copy-on-write: every mutation swaps in a new dict, so a snapshot handed
        # out earlier never changes underneath its reader.
        self._states: dict[str, NotificationState] = dict(state_store.load_all())

        self._listeners: list[StateListener] = []
        self._reminders: set[asyncio.Task[None]] = set()
        self._runner: asyncio.Task[None] | None = None

        self._unsubscribe_settings = settings_store.subscribe(self._on_settings_changed)
        logger.info("NotificationScheduler ready states=%d interval=%.0fs", len(self._states), self._interval)

    # ---- state access ----

    def now(self) -> datetime:
        return self._clock()

    @property
    def states(self) -> dict[str, NotificationState]:
        return self._states

    def get_state(self, task_id: str) -> NotificationState | None:
        return self._states.get(task_id)

    @property
    def pending_reminders(self) -> int:
        return sum(1 for t in self._reminders if not t.done())

    def _persist(self) -> None:
        try:
            self._state_store.save_all(self._states)
        except Exception:
            logger.exception("Persisting notification states failed; keeping in-memory copy")

    def _put_state(self, state: NotificationState) -> None:
        self._states = {**self._states, state.task_id: state}
        self._persist()

    def _drop_state(self, task_id: str) -> bool:
        if task_id not in self._states:
            return False
        self._states = {k: v for k, v in self._states.items() if k != task_id}
        self._persist()
        return True

    # ---- subscribers ----

    def on_state_changed(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for notification events. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, kind: EventKind, message: str, task_id: str | None = None) -> None:
        event = NotificationEvent(kind=kind, message=message, task_id=task_id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Notification listener failed event=%s", kind.value)

    def _on_settings_changed(self, settings: NotificationSettings) -> None:
        self._publish(EventKind.SETTINGS_CHANGED, f"Notification settings changed: {settings.to_dict()}")

    # ---- policy ----

    def should_notify(self, task_id: str, settings: NotificationSettings | None = None) -> bool:
        settings = settings or self._settings_store.get()
        window = throttle_window(settings.frequency)
        if not settings.enabled or window is None:
            return False

        state = self._states.get(task_id)
        if state is None:
            return True
        if state.notification_count >= settings.max_notifications_per_task:
            return False

        return self.now() - state.last_notification_time >= window

    def create_notification_message(self, task: Task, is_overdue: bool) -> str:
        now = self.now()
        due_text = calendar_day(task.due_date, now).isoformat()
        if is_overdue:
            days = math.floor((now - task.due_date) / timedelta(days=1))
            unit = "day" if days == 1 else "days"
            return f"OVERDUE: {task.title} (due {due_text}, {days} {unit} ago)"
        return f"{task.title} is due today ({due_text})"

    # ---- sweep ----

    def check_and_notify_due_tasks(self) -> int:
        """
        One sweep over the active tasks. Returns the number of reminders fired.

        Must run on the event loop: reminders are scheduled as loop tasks and are
        not awaited here.
        """
        settings = self._settings_store.get()

        try:
            tasks = self._task_store.list_active_tasks()
        except Exception:
            logger.exception("list_active_tasks failed; skipping sweep")
            return 0

        now = self.now()
        fired = 0

        for task in tasks:
            try:
                overdue = self._classifier.is_overdue(task)
                due_today = same_calendar_day(task.due_date, now)

                if settings.show_overdue_only and not overdue:
                    continue
                if not (overdue or due_today):
                    continue
                if not self.should_notify(task.id, settings):
                    continue

                self._fire(task, overdue)
                fired += 1
            except Exception:
                logger.exception("Notification check failed task_id=%s", getattr(task, "id", "?"))

        self._cleanup({t.id for t in tasks})

        if fired:
            logger.info("Sweep fired %d reminder(s) over %d active task(s)", fired, len(tasks))
        else:
            logger.debug("Sweep fired nothing over %d active task(s)", len(tasks))
        return fired

    def _cleanup(self, active_ids: set[str]) -> None:
        stale = [task_id for task_id in self._states if task_id not in active_ids]
        if stale:
            self._states = {k: v for k, v in self._states.items() if k in active_ids}
            logger.debug("Dropped notification state for %d inactive task(s)", len(stale))
        self._persist()

    def _fire(self, task: Task, is_overdue: bool) -> None:
        settings = self._settings_store.get()
        reminder = Reminder(
            task=task,
            is_overdue=is_overdue,
            message=self.create_notification_message(task, is_overdue),
            snooze_label=format_snooze_duration(snooze_duration(settings.frequency)),
        )

        prompt = asyncio.get_running_loop().create_task(
            self._present(reminder), name=f"reminder-{task.id}"
        )
        self._reminders.add(prompt)
        prompt.add_done_callback(self._reminders.discard)

        previous = self._states.get(task.id)
        self._put_state(
            NotificationState(
                task_id=task.id,
                last_notification_time=self.now(),
                notification_count=(previous.notification_count + 1) if previous else 1,
                is_overdue=is_overdue,
            )
        )
        self._publish(EventKind.NOTIFIED, reminder.message, task.id)

    async def _present(self, reminder: Reminder) -> None:
        try:
            action = await self._presenter.present_reminder(reminder)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Presenting reminder failed task_id=%s", reminder.task.id)
            return

        if action is None:
            return
        await self.handle_action(reminder.task, action)

    # ---- actions ----

    async def handle_action(self, task: Task, action: ReminderAction) -> None:
        try:
            if action == ReminderAction.VALIDATE:
                comment = ""
                try:
                    comment = await self._presenter.prompt_validation_comment(task) or ""
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Comment prompt failed task_id=%s; validating without comment", task.id)
                self.validate_task(task.id, comment)
            elif action == ReminderAction.SHOW_DETAILS:
                await self._presenter.show_task_details(task)
            elif action == ReminderAction.SNOOZE:
                self.snooze_task(task.id)
            elif action == ReminderAction.DISABLE_ALL:
                self.disable_all()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Reminder action failed task_id=%s action=%s", task.id, action.value)

    def validate_task(self, task_id: str, comment_text: str = "") -> Task | None:
        """Complete the task through the store and forget its reminder history."""
        updated = self._task_store.validate_task(task_id, comment_text)
        if updated is None:
            self._publish(EventKind.NOT_FOUND, "Task not found", task_id)
            return None

        self._drop_state(task_id)
        self._publish(EventKind.VALIDATED, f'Task "{updated.title}" validated successfully!', task_id)
        return updated

    def snooze_task(self, task_id: str) -> timedelta:
        settings = self._settings_store.get()
        duration = snooze_duration(settings.frequency)

        state = self._states.get(task_id)
        if state is not None:
            self._put_state(replace(state, last_notification_time=self.now() + duration))

        self._publish(
            EventKind.SNOOZED,
            f"Task notification snoozed for {format_snooze_duration(duration)}",
            task_id,
        )
        return duration

    def disable_all(self) -> None:
        self._settings_store.set_enabled(False)
        self._publish(EventKind.DISABLED, "Task notifications disabled. You can re-enable them in settings.")

    def reactivate_notifications_for_task(self, task_id: str) -> ReactivationResult:
        try:
            task = self._task_store.get_task(task_id)
        except Exception:
            logger.exception("get_task failed task_id=%s", task_id)
            task = None

        if task is None or not task.is_active:
            self._publish(EventKind.NOT_FOUND, "Task not found or is not active", task_id)
            return ReactivationResult.NOT_FOUND

        if self._drop_state(task_id):
            self._publish(EventKind.REACTIVATED, f'Notifications reactivated for task "{task.title}"', task_id)
            return ReactivationResult.REACTIVATED

        self._publish(
            EventKind.ALREADY_ACTIVE,
            f'Task "{task.title}" was not in notification state (notifications are already active)',
            task_id,
        )
        return ReactivationResult.ALREADY_ACTIVE

    def reset_notification_states(self) -> None:
        self._states = {}
        self._persist()
        self._publish(EventKind.RESET, "All notification states have been reset")

    def check_now(self) -> int:
        fired = self.check_and_notify_due_tasks()
        self._publish(EventKind.CHECKED, "Task notification check completed")
        return fired

    def get_notification_stats(self) -> NotificationStats:
        try:
            total = len(self._task_store.list_active_tasks())
        except Exception:
            logger.exception("list_active_tasks failed while building stats")
            total = 0
        return NotificationStats(
            total_tasks=total,
            notified_tasks=len(self._states),
            overdue_notified=sum(1 for s in self._states.values() if s.is_overdue),
            settings=self._settings_store.get(),
        )

    # ---- runtime ----

    async def run(self) -> None:
        """
        Polling loop: wait one interval, sweep, repeat.

        To stop the scheduler, cancel the coroutine/task (or call stop()).
        """
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.check_and_notify_due_tasks()
            except Exception:
                logger.exception("Notification sweep crashed")

    def start(self) -> None:
        if self._runner is not None and not self._runner.done():
            return
        self._runner = asyncio.get_running_loop().create_task(self.run(), name="notification-scheduler")
        logger.info("Notification polling started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        """Stop polling, drop outstanding prompts and flush state."""
        if self._runner is not None:
            self._runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._runner
            self._runner = None

        outstanding = [t for t in self._reminders if not t.done()]
        for t in outstanding:
            t.cancel()
        if outstanding:
            await asyncio.gather(*outstanding, return_exceptions=True)

        self._unsubscribe_settings()
        self._persist()
        logger.info("Notification scheduler stopped (states=%d)", len(self._states))
