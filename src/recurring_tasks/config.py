# src/recurring_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every key has a default.
- Notification defaults here are only used to seed the settings file the
  first time; afterwards the settings store owns them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "RTASKS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    """Lower-cased value if it is one of `choices`, else `default`."""
    raw = _env(name, default).strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- Local data paths ----
    data_dir: Path
    tasks_db_path: Path
    notification_state_path: Path
    notification_settings_path: Path

    # ---- Scheduling ----
    check_interval_seconds: float
    due_date_anchor: str

    # ---- Notification defaults (seed values for the settings store) ----
    notifications_enabled: bool
    notification_frequency: str
    show_overdue_only: bool
    max_notifications_per_task: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "recurring-tasks")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/recurring_tasks"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        notification_state_path = _env_path(
            _k("NOTIFICATION_STATE_PATH"), data_dir / "notification_states.json"
        )
        notification_settings_path = _env_path(
            _k("NOTIFICATION_SETTINGS_PATH"), data_dir / "notification_settings.json"
        )

        # 30 minutes between sweeps, never less than one second.
        check_interval_seconds = max(1.0, _env_float(_k("CHECK_INTERVAL_SECONDS"), 1800.0))
        due_date_anchor = _env_choice(
            _k("DUE_DATE_ANCHOR"), "validation_time", ("validation_time", "previous_due_date")
        )

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        notification_frequency = _env_choice(
            _k("NOTIFICATION_FREQUENCY"), "hourly", ("immediate", "hourly", "daily", "disabled")
        )
        show_overdue_only = _env_bool(_k("SHOW_OVERDUE_ONLY"), False)
        max_notifications_per_task = _env_int(_k("MAX_NOTIFICATIONS_PER_TASK"), 5)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            notification_state_path=notification_state_path,
            notification_settings_path=notification_settings_path,
            check_interval_seconds=check_interval_seconds,
            due_date_anchor=due_date_anchor,
            notifications_enabled=notifications_enabled,
            notification_frequency=notification_frequency,
            show_overdue_only=show_overdue_only,
            max_notifications_per_task=max_notifications_per_task,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
