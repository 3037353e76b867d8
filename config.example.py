# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Notification preferences seeded from here are written to the settings file on first change;
after that, edit them with /settings instead.
"""

ENV_VARS = {
    # App / logging
    "RTASKS_APP_NAME": "App display name (default: recurring-tasks).",
    "RTASKS_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "RTASKS_CONSOLE_ENABLED": "Enable console REPL (true/false). When off, only reminders run.",
    # Paths (gitignored)
    "RTASKS_DATA_DIR": "Local data directory (default: .local/recurring_tasks).",
    "RTASKS_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "RTASKS_NOTIFICATION_STATE_PATH": (
        "Per-task reminder state JSON path (default: <data_dir>/notification_states.json)."
    ),
    "RTASKS_NOTIFICATION_SETTINGS_PATH": (
        "Reminder preferences JSON path (default: <data_dir>/notification_settings.json)."
    ),
    # Scheduling
    "RTASKS_CHECK_INTERVAL_SECONDS": "Seconds between reminder sweeps (default: 1800, min: 1).",
    "RTASKS_DUE_DATE_ANCHOR": "validation_time | previous_due_date (default: validation_time).",
    # Reminder defaults
    "RTASKS_NOTIFICATIONS_ENABLED": "Reminders on/off (default: true).",
    "RTASKS_NOTIFICATION_FREQUENCY": "immediate | hourly | daily | disabled (default: hourly).",
    "RTASKS_SHOW_OVERDUE_ONLY": "Skip tasks that are merely due today (default: false).",
    "RTASKS_MAX_NOTIFICATIONS_PER_TASK": "Reminders per task before it goes quiet, 1..50 (default: 5).",
}
