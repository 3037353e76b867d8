# src/recurring_tasks/notifications/settings_store.py

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .models import NotificationSettings

logger = logging.getLogger(__name__)

SettingsListener = Callable[[NotificationSettings], None]


class NotificationSettingsStore:
    """
    Reminder preferences backed by a small JSON file.

    Readers get immutable snapshots via get(). Writers go through update(), which
    persists (best-effort) and then tells every subscriber about the new snapshot.
    Passing path=None keeps everything in memory.
    """

    def __init__(self, path: str | Path | None = None, *, defaults: NotificationSettings | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._listeners: list[SettingsListener] = []
        self._current = self._load(defaults or NotificationSettings())

    def _load(self, defaults: NotificationSettings) -> NotificationSettings:
        if self._path is None or not self._path.exists():
            return defaults
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to load notification settings from %s; using defaults", self._path)
            return defaults
        settings = NotificationSettings.from_dict(data, base=defaults)
        logger.info("Loaded notification settings from %s: %s", self._path, settings.to_dict())
        return settings

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._current.to_dict(), indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError:
            logger.exception("Failed to save notification settings to %s", self._path)

    def get(self) -> NotificationSettings:
        return self._current

    def update(self, **changes: Any) -> NotificationSettings:
        """
        Apply changes (enabled=, frequency=, show_overdue_only=,
        max_notifications_per_task=) and notify subscribers.

        Values are coerced the same way as the settings file; unknown keys raise.
        """
        allowed = {"enabled", "frequency", "show_overdue_only", "max_notifications_per_task"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"unknown notification setting(s): {', '.join(sorted(unknown))}")

        merged = {**self._current.to_dict(), **_to_file_keys(changes)}
        new = NotificationSettings.from_dict(merged, base=self._current)
        if new == self._current:
            return new

        self._current = new
        self._save()
        logger.info("Notification settings changed: %s", new.to_dict())
        self._publish(new)
        return new

    def set_enabled(self, enabled: bool) -> NotificationSettings:
        return self.update(enabled=enabled)

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, settings: NotificationSettings) -> None:
        for listener in list(self._listeners):
            try:
                listener(settings)
            except Exception:
                logger.exception("Settings listener failed")


def _to_file_keys(changes: dict[str, Any]) -> dict[str, Any]:
    names = {
        "enabled": "enabled",
        "frequency": "frequency",
        "show_overdue_only": "showOverdueOnly",
        "max_notifications_per_task": "maxNotificationsPerTask",
    }
    return {names[k]: v for k, v in changes.items()}
