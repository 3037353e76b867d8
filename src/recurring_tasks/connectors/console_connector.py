# src/recurring_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, TextIO

from ..notifications.models import EventKind, NotificationEvent, Reminder, ReminderAction
from ..tasks.status import StatusClassifier
from ..tasks.task_models import Task

if TYPE_CHECKING:
    from ..core.loop_runner import SchedulerBackgroundRunner
    from ..core.state import AppState

logger = logging.getLogger(__name__)

ACTION_LABELS = {
    ReminderAction.VALIDATE: "validate",
    ReminderAction.SHOW_DETAILS: "details",
    ReminderAction.SNOOZE: "snooze",
    ReminderAction.DISABLE_ALL: "disable",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_task_details(task: Task, classifier: StatusClassifier) -> str:
    p = task.periodicity
    cadence = p.type.value if p.interval is None else f"every {p.interval} day(s)"
    lines = [
        f"Task {task.id}: {task.title}",
        f"  Status:      {task.status.value} | {classifier.comprehensive_status(task)}",
        f"  Progress:    {classifier.mixed_status(task)}",
        f"  Periodicity: {cadence}",
        f"  Created:     {task.creation_date.isoformat(timespec='minutes')}",
        f"  Due:         {task.due_date.isoformat(timespec='minutes')}",
    ]
    if task.description:
        lines.append(f"  Description: {task.description}")
    if task.comments:
        lines.append("  History:")
        for c in task.comments:
            mark = "✔" if c.is_validation else "-"
            lines.append(f"    {mark} {c.date.isoformat(timespec='minutes')} {c.text}")
    return "\n".join(lines)


@dataclass(slots=True)
class _OpenPrompt:
    reminder: Reminder
    future: asyncio.Future[ReminderAction | None]


class ConsolePresenter:
    """
    ReminderPresenter for the terminal.

    Each reminder gets a number and waits until the user answers with
    `/answer <n> <action>`; any number of reminders may be open at once.
    Must be driven from the scheduler's event loop.
    """

    def __init__(self, classifier: StatusClassifier, out: TextIO | None = None) -> None:
        self._classifier = classifier
        self._out = out or sys.stdout
        self._open: dict[int, _OpenPrompt] = {}
        self._next_no = 1
        self._comments: dict[str, str] = {}

    def _print(self, text: str) -> None:
        print(f"[{_ts_local()}] {text}", file=self._out, flush=True)

    @property
    def open_prompts(self) -> dict[int, Reminder]:
        return {n: p.reminder for n, p in self._open.items()}

    async def present_reminder(self, reminder: Reminder) -> ReminderAction | None:
        no = self._next_no
        self._next_no += 1

        future: asyncio.Future[ReminderAction | None] = asyncio.get_running_loop().create_future()
        self._open[no] = _OpenPrompt(reminder=reminder, future=future)

        choices = " | ".join(ACTION_LABELS[a] for a in reminder.actions)
        self._print(
            f"[REMINDER #{no}] {reminder.message}\n"
            f"    /answer {no} <{choices}>  (snooze = {reminder.snooze_label})"
        )
        try:
            return await future
        finally:
            self._open.pop(no, None)

    def answer(self, no: int, action: ReminderAction, comment: str = "") -> bool:
        prompt = self._open.get(no)
        if prompt is None or prompt.future.done():
            return False
        if comment:
            self._comments[prompt.reminder.task.id] = comment
        prompt.future.set_result(action)
        return True

    async def show_task_details(self, task: Task) -> None:
        self._print(format_task_details(task, self._classifier))

    async def prompt_validation_comment(self, task: Task) -> str | None:
        # The console collects the optional comment together with /answer.
        return self._comments.pop(task.id, None)

    def on_event(self, event: NotificationEvent) -> None:
        """Scheduler listener: echo state changes (reminders themselves are printed above)."""
        if event.kind == EventKind.NOTIFIED:
            return
        self._print(event.message)


def run_console_loop(state: AppState, runner: SchedulerBackgroundRunner | None = None) -> None:
    from ..cli.commands import registry as command_registry

    logger.info("Console connector started.")
    print(f"[{_ts_local()}] [CONSOLE] Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            line = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            if runner is not None:
                reply = runner.call(command_registry.handle, state, line)
            else:
                reply = command_registry.handle(state, line)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help to list them."
        print(f"[{_ts_local()}] {reply}")

    logger.info("Console connector finished.")
