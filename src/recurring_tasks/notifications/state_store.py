# src/recurring_tasks/notifications/state_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from .models import NotificationState

logger = logging.getLogger(__name__)


class JsonNotificationStateStore:
    """
    Whole-map JSON persistence for notification states.

    Best-effort on both ends: an unreadable file loads as {}, a failed write is
    logged and the in-memory map stays authoritative until the next save.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> dict[str, NotificationState]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to load notification states from %s", self._path)
            return {}

        if not isinstance(data, dict):
            logger.warning("Notification state file %s is not an object; ignoring", self._path)
            return {}

        out: dict[str, NotificationState] = {}
        for task_id, raw in data.items():
            state = NotificationState.from_dict(str(task_id), raw)
            if state is None:
                logger.warning("Dropping unreadable notification state for task %s", task_id)
                continue
            out[str(task_id)] = state

        logger.info("Loaded notification states: %d tasks from %s", len(out), self._path)
        return out

    def save_all(self, states: dict[str, NotificationState]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            payload = {task_id: s.to_dict() for task_id, s in states.items()}
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(OSError):
                os.chmod(self._path, 0o600)
            logger.debug("Saved notification states: %d tasks to %s", len(states), self._path)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save notification states to %s", self._path)


class InMemoryNotificationStateStore:
    """Keeps a copy of the last saved map; used by tests and ephemeral runs."""

    def __init__(self, initial: dict[str, NotificationState] | None = None) -> None:
        self._saved: dict[str, dict] = {k: v.to_dict() for k, v in (initial or {}).items()}
        self.save_count = 0

    def load_all(self) -> dict[str, NotificationState]:
        out: dict[str, NotificationState] = {}
        for task_id, raw in self._saved.items():
            state = NotificationState.from_dict(task_id, raw)
            if state is not None:
                out[task_id] = state
        return out

    def save_all(self, states: dict[str, NotificationState]) -> None:
        self._saved = {k: v.to_dict() for k, v in states.items()}
        self.save_count += 1
