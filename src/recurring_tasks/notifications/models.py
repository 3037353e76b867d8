# src/recurring_tasks/notifications/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from ..tasks.task_models import Task

MIN_MAX_NOTIFICATIONS = 1
MAX_MAX_NOTIFICATIONS = 50


class NotificationFrequency(StrEnum):
    IMMEDIATE = "immediate"  # every sweep that finds the task due/overdue
    HOURLY = "hourly"
    DAILY = "daily"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, raw: Any) -> NotificationFrequency:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.HOURLY


_THROTTLE_WINDOWS: dict[NotificationFrequency, timedelta] = {
    NotificationFrequency.IMMEDIATE: timedelta(0),
    NotificationFrequency.HOURLY: timedelta(hours=1),
    NotificationFrequency.DAILY: timedelta(hours=24),
}

_SNOOZE_DURATIONS: dict[NotificationFrequency, timedelta] = {
    NotificationFrequency.IMMEDIATE: timedelta(minutes=30),
    NotificationFrequency.HOURLY: timedelta(hours=2),
    NotificationFrequency.DAILY: timedelta(hours=6),
    NotificationFrequency.DISABLED: timedelta(hours=24),
}


def throttle_window(frequency: NotificationFrequency) -> timedelta | None:
    """Minimum gap between two reminders for one task; None means never remind."""
    return _THROTTLE_WINDOWS.get(frequency)


def snooze_duration(frequency: NotificationFrequency) -> timedelta:
    return _SNOOZE_DURATIONS.get(frequency, timedelta(hours=2))


def format_snooze_duration(duration: timedelta) -> str:
    total_minutes = int(duration.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)

    def unit(n: int, word: str) -> str:
        return f"{n} {word}" if n == 1 else f"{n} {word}s"

    if hours and minutes:
        return f"{unit(hours, 'hour')} {unit(minutes, 'minute')}"
    if hours:
        return unit(hours, "hour")
    return unit(minutes, "minute")


def clamp_max_notifications(raw: Any, default: int = 5) -> int:
    try:
        n = int(raw)
    except (TypeError, ValueError):
        n = default
    return max(MIN_MAX_NOTIFICATIONS, min(MAX_MAX_NOTIFICATIONS, n))


@dataclass(slots=True, frozen=True)
class NotificationSettings:
    enabled: bool = True
    frequency: NotificationFrequency = NotificationFrequency.HOURLY
    show_overdue_only: bool = False
    max_notifications_per_task: int = 5

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, base: NotificationSettings | None = None) -> NotificationSettings:
        """Build settings from loosely-typed input; missing keys fall back to `base`."""
        base = base or cls()
        if not isinstance(data, dict):
            return base

        enabled = data.get("enabled", base.enabled)
        show_overdue_only = data.get("showOverdueOnly", data.get("show_overdue_only", base.show_overdue_only))
        frequency = data.get("frequency", base.frequency)
        max_n = data.get(
            "maxNotificationsPerTask",
            data.get("max_notifications_per_task", base.max_notifications_per_task),
        )

        return cls(
            enabled=_as_bool(enabled, base.enabled),
            frequency=NotificationFrequency.parse(frequency),
            show_overdue_only=_as_bool(show_overdue_only, base.show_overdue_only),
            max_notifications_per_task=clamp_max_notifications(max_n, base.max_notifications_per_task),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency.value,
            "showOverdueOnly": self.show_overdue_only,
            "maxNotificationsPerTask": self.max_notifications_per_task,
        }


def _as_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        s = raw.strip().lower()
        if s in {"1", "true", "yes", "y", "on"}:
            return True
        if s in {"0", "false", "no", "n", "off"}:
            return False
        return default
    if isinstance(raw, (int, float)):
        return bool(raw)
    return default


@dataclass(slots=True, frozen=True)
class NotificationState:
    """
    Per-task reminder bookkeeping.

    last_notification_time may lie in the future: that is how a snooze is stored.
    """

    task_id: str
    last_notification_time: datetime
    notification_count: int = 0
    is_overdue: bool = False

    @classmethod
    def from_dict(cls, task_id: str, data: Any) -> NotificationState | None:
        """
        Rebuild a persisted entry, filling defaults for missing fields.

        Returns None only when there is no usable timestamp.
        """
        if not isinstance(data, dict):
            return None

        raw_ts = data.get("lastNotificationTime")
        try:
            last = datetime.fromisoformat(str(raw_ts).replace("Z", "+00:00"))
        except ValueError:
            return None
        if last.tzinfo is None:
            # Older files stored local wall-clock times.
            last = last.astimezone()

        try:
            count = max(0, int(data.get("notificationCount") or 0))
        except (TypeError, ValueError):
            count = 0

        return cls(
            task_id=str(data.get("taskId") or task_id),
            last_notification_time=last,
            notification_count=count,
            is_overdue=_as_bool(data.get("isOverdue"), False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "lastNotificationTime": self.last_notification_time.isoformat(),
            "notificationCount": self.notification_count,
            "isOverdue": self.is_overdue,
        }


class ReminderAction(StrEnum):
    VALIDATE = "validate"
    SHOW_DETAILS = "show_details"
    SNOOZE = "snooze"
    DISABLE_ALL = "disable_all"

    @classmethod
    def parse(cls, raw: str) -> ReminderAction | None:
        s = (raw or "").strip().lower().replace("-", "_")
        aliases = {
            "v": cls.VALIDATE,
            "done": cls.VALIDATE,
            "d": cls.SHOW_DETAILS,
            "details": cls.SHOW_DETAILS,
            "s": cls.SNOOZE,
            "disable": cls.DISABLE_ALL,
            "off": cls.DISABLE_ALL,
        }
        if s in aliases:
            return aliases[s]
        try:
            return cls(s)
        except ValueError:
            return None


ALL_ACTIONS: tuple[ReminderAction, ...] = (
    ReminderAction.VALIDATE,
    ReminderAction.SHOW_DETAILS,
    ReminderAction.SNOOZE,
    ReminderAction.DISABLE_ALL,
)


@dataclass(slots=True, frozen=True)
class Reminder:
    """What the presenter shows; the presenter picks how."""

    task: Task
    is_overdue: bool
    message: str
    snooze_label: str
    actions: tuple[ReminderAction, ...] = ALL_ACTIONS


class ReactivationResult(StrEnum):
    REACTIVATED = "reactivated"
    ALREADY_ACTIVE = "already_active"
    NOT_FOUND = "not_found"


class EventKind(StrEnum):
    NOTIFIED = "notified"
    VALIDATED = "validated"
    SNOOZED = "snoozed"
    DISABLED = "disabled"
    REACTIVATED = "reactivated"
    ALREADY_ACTIVE = "already_active"
    NOT_FOUND = "not_found"
    RESET = "reset"
    SETTINGS_CHANGED = "settings_changed"
    CHECKED = "checked"


@dataclass(slots=True, frozen=True)
class NotificationEvent:
    kind: EventKind
    message: str
    task_id: str | None = None


@dataclass(slots=True, frozen=True)
class NotificationStats:
    total_tasks: int
    notified_tasks: int
    overdue_notified: int
    settings: NotificationSettings = field(default_factory=NotificationSettings)
