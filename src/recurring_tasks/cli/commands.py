# src/recurring_tasks/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, time
from pathlib import Path

from ..connectors.console_connector import format_task_details
from ..core.state import AppState
from ..notifications.models import NotificationFrequency, ReactivationResult, ReminderAction
from ..tasks.task_models import Task, parse_periodicity

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

# Date-only due dates mean "by the end of that day".
END_OF_DAY = time(23, 59)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def parse_due(raw: str, now: datetime) -> datetime:
    """YYYY-MM-DD or YYYY-MM-DDTHH:MM, interpreted in the timezone of `now`."""
    raw = raw.strip()
    if not raw:
        raise ValueError("due date is required")
    if len(raw) == 10:
        due = datetime.combine(datetime.fromisoformat(raw).date(), END_OF_DAY)
    else:
        due = datetime.fromisoformat(raw)
    if due.tzinfo is None and now.tzinfo is not None:
        due = due.replace(tzinfo=now.tzinfo)
    return due


def resolve_task(state: AppState, raw_id: str) -> Task | None:
    """Find a task by full id or by a unique id prefix (lists show 8 chars)."""
    task = state.task_store.get_task(raw_id)
    if task is not None:
        return task
    matches = [t for t in state.task_store.list_all_tasks() if t.id.startswith(raw_id)]
    return matches[0] if len(matches) == 1 else None


def _format_task_line(state: AppState, task: Task) -> str:
    return f"  {task.id[:8]}  {task.title:<30.30}  {state.classifier.mixed_status(task)}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.list_active_tasks()
    if not tasks:
        return "No active tasks. Add one with /add <title> | <periodicity> | <due>."
    tasks.sort(key=lambda t: t.due_date)
    return "\n".join(["Active tasks:"] + [_format_task_line(state, t) for t in tasks])


def cmd_archived(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.list_archived_tasks()
    if not tasks:
        return "No archived tasks."
    lines = ["Archived tasks:"]
    for t in tasks:
        lines.append(f"  {t.id[:8]}  {t.title:<30.30}  {state.classifier.comprehensive_status(t)}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> | <none|daily|weekly|monthly|yearly|custom:N> | <YYYY-MM-DD[THH:MM]> [| description]
    """
    parts = [p.strip() for p in " ".join(args).split("|")]
    if len(parts) < 3:
        return "Usage: /add <title> | <periodicity> | <YYYY-MM-DD[THH:MM]> [| description]"

    try:
        periodicity = parse_periodicity(parts[1])
        due = parse_due(parts[2], state.classifier.now())
    except ValueError as e:
        return f"Invalid task: {e}"

    description = parts[3] if len(parts) > 3 else None
    task = state.task_store.add_task(
        title=parts[0], periodicity=periodicity, due_date=due, description=description
    )
    return f"Added task {task.id[:8]}: {task.title} ({state.classifier.time_remaining(task)})"


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task-id>"
    task = resolve_task(state, args[0])
    if task is None:
        return f"Task {args[0]} not found."
    return format_task_details(task, state.classifier)


def cmd_validate(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /validate <task-id> [comment]"
    task = resolve_task(state, args[0])
    if task is None:
        return f"Task {args[0]} not found."
    if not task.is_active:
        return f'Task "{task.title}" is archived, not active. Use /unarchive first.'

    updated = state.scheduler.validate_task(task.id, " ".join(args[1:]))
    if updated is None:
        return f"Task {args[0]} not found."
    if not updated.is_active:
        return f'Task "{updated.title}" completed and archived.'
    return f'Task "{updated.title}" validated; next due {updated.due_date.isoformat(timespec="minutes")}.'


def cmd_comment(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /comment <task-id> <text>"
    task = resolve_task(state, args[0])
    if task is None or state.task_store.add_comment(task.id, " ".join(args[1:])) is None:
        return f"Task {args[0]} not found."
    return f'Comment added to "{task.title}".'


def cmd_archive(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /archive <task-id>"
    task = resolve_task(state, args[0])
    if task is None or not state.task_store.archive_task(task.id):
        return f"Task {args[0]} not found."
    return f'Task "{task.title}" archived.'


def cmd_unarchive(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unarchive <task-id>"
    task = resolve_task(state, args[0])
    if task is None or not state.task_store.unarchive_task(task.id):
        return f"Task {args[0]} not found."
    return f'Task "{task.title}" is active again.'


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <task-id>"
    task = resolve_task(state, args[0])
    if task is None or not state.task_store.delete_task(task.id):
        return f"Task {args[0]} not found."
    return f'Task "{task.title}" deleted.'


def cmd_check(state: AppState, args: list[str]) -> str:
    fired = state.scheduler.check_now()
    return f"Check completed: {fired} reminder(s) sent."


def cmd_reset(state: AppState, args: list[str]) -> str:
    state.scheduler.reset_notification_states()
    return "All notification states have been reset."


def cmd_reactivate(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /reactivate <task-id>"
    task = resolve_task(state, args[0])
    result = state.scheduler.reactivate_notifications_for_task(task.id if task else args[0])
    if result == ReactivationResult.REACTIVATED:
        return f'Notifications reactivated for "{task.title}".'
    if result == ReactivationResult.ALREADY_ACTIVE:
        return f'Notifications for "{task.title}" are already active.'
    return "Task not found or is not active."


_SETTING_KEYS = {
    "enabled": "enabled",
    "frequency": "frequency",
    "overdue-only": "show_overdue_only",
    "show_overdue_only": "show_overdue_only",
    "max": "max_notifications_per_task",
    "max_notifications_per_task": "max_notifications_per_task",
}


def cmd_settings(state: AppState, args: list[str]) -> str:
    """
    /settings                 -> show notification settings
    /settings <key> <value>   -> change one (enabled, frequency, overdue-only, max)
    """
    if len(args) >= 2:
        key = _SETTING_KEYS.get(args[0].lower())
        if key is None:
            return f"Unknown setting {args[0]}. Keys: enabled, frequency, overdue-only, max."
        if key == "frequency" and args[1].lower() not in {f.value for f in NotificationFrequency}:
            return f"Unknown frequency {args[1]}. Use immediate, hourly, daily or disabled."
        state.settings_store.update(**{key: args[1]})

    s = state.settings_store.get()
    return (
        "Notification settings:\n"
        f"  enabled:       {s.enabled}\n"
        f"  frequency:     {s.frequency.value} (immediate | hourly | daily | disabled)\n"
        f"  overdue-only:  {s.show_overdue_only}\n"
        f"  max:           {s.max_notifications_per_task} reminders per task"
    )


def cmd_stats(state: AppState, args: list[str]) -> str:
    stats = state.scheduler.get_notification_stats()
    return (
        "Notification stats:\n"
        f"  Active tasks:        {stats.total_tasks}\n"
        f"  Tasks reminded:      {stats.notified_tasks}\n"
        f"  Reminded as overdue: {stats.overdue_notified}\n"
        f"  Open reminders:      {state.scheduler.pending_reminders}"
    )


def cmd_answer(state: AppState, args: list[str]) -> str:
    """/answer <n> <validate|details|snooze|disable> [comment]"""
    if len(args) < 2 or not args[0].isdigit():
        return "Usage: /answer <n> <validate|details|snooze|disable> [comment]"
    action = ReminderAction.parse(args[1])
    if action is None:
        return f"Unknown action {args[1]}."
    presenter = state.presenter
    if presenter is None or not presenter.answer(int(args[0]), action, " ".join(args[2:])):
        return f"No open reminder #{args[0]}."
    return f"Reminder #{args[0]}: {action.value}."


def cmd_export(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /export <path>"
    out = Path(args[0]).expanduser()
    try:
        out.write_text(state.task_store.export_tasks(), encoding="utf-8")
    except OSError as e:
        logger.exception("Export to %s failed", out)
        return f"Export failed: {e}"
    return f"Exported to: {out}"


def cmd_import(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /import <path>"
    src = Path(args[0]).expanduser()
    try:
        text = src.read_text(encoding="utf-8")
    except OSError as e:
        return f"Import failed: {e}"
    result = state.task_store.import_tasks(text)
    lines = [result.message] + [f"  - {err}" for err in result.errors]
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List active tasks with status.", aliases=["ls"])
registry.register("archived", cmd_archived, help_text="List archived tasks.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> | <periodicity> | <due> [| description].")
registry.register("show", cmd_show, help_text="Show task details: /show <task-id>.")
registry.register("validate", cmd_validate, help_text="Mark a task done: /validate <task-id> [comment].")
registry.register("comment", cmd_comment, help_text="Add a note: /comment <task-id> <text>.")
registry.register("archive", cmd_archive, help_text="Archive a task: /archive <task-id>.")
registry.register("unarchive", cmd_unarchive, help_text="Restore an archived task: /unarchive <task-id>.")
registry.register("delete", cmd_delete, help_text="Delete a task permanently: /delete <task-id>.")
registry.register("check", cmd_check, help_text="Check for due/overdue tasks now.")
registry.register("reset", cmd_reset, help_text="Reset all notification states.")
registry.register("reactivate", cmd_reactivate, help_text="Re-enable reminders for a task: /reactivate <task-id>.")
registry.register("settings", cmd_settings, help_text="Show or change notification settings.")
registry.register("stats", cmd_stats, help_text="Show notification statistics.")
registry.register("answer", cmd_answer, help_text="Answer a reminder: /answer <n> <action> [comment].")
registry.register("export", cmd_export, help_text="Export all tasks to JSON: /export <path>.")
registry.register("import", cmd_import, help_text="Import tasks from JSON: /import <path>.")
