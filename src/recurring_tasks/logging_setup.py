# src/recurring_tasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

APP_LOGGER = "recurring_tasks"
LOG_FILE_NAME = "recurring_tasks.log"

# Loggers that tick in the background while the user types; console shows WARNING+ only.
BACKGROUND_LOGGERS: tuple[str, ...] = (
    "recurring_tasks.notifications.scheduler",
    "recurring_tasks.notifications.state_store",
    "recurring_tasks.core.loop_runner",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the REPL:
    - app logs pass, except background loggers below WARNING
    - captured Python warnings and third-party logs only at ERROR+
    """

    def __init__(self, background: tuple[str, ...] = BACKGROUND_LOGGERS) -> None:
        super().__init__()
        self._background = background

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
            if name.startswith(self._background):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """'debug' / 'WARNING' / '10' -> logging level; anything else -> default."""
    raw = (name or "").strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/recurring_tasks",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console (filtered) + rotating file (everything at file_level).

    Call once, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    rotating = RotatingFileHandler(
        str(log_file), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    rotating.setLevel(file_level)
    rotating.setFormatter(fmt)
    root.addHandler(rotating)

    # warnings.warn(...) -> 'py.warnings' logger
    logging.captureWarnings(True)
    return log_file
