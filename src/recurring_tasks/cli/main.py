# src/recurring_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the notification scheduler on its own event loop in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.loop_runner import SchedulerBackgroundRunner, start_scheduler_in_background
from ..logging_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)


def _install_signal_handlers(stop_main: threading.Event) -> None:
    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handle_signal)
        except (ValueError, OSError):
            logger.debug("Handler for %s not installed.", sig, exc_info=True)


def _shutdown(runner: SchedulerBackgroundRunner | None) -> None:
    if runner is None:
        return
    runner.stop()
    runner.join(timeout=10.0)
    if runner.thread.is_alive():
        logger.warning("Scheduler thread did not stop within 10s; exiting anyway.")


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(log_dir=settings.data_dir, console_level=level_from_name(settings.log_level))
    logger.info("Starting %s (log file: %s)", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    runner = start_scheduler_in_background(state)
    if runner is None:
        logger.error("Notification scheduler failed to start; reminders are off for this run.")

    stop_main = threading.Event()
    _install_signal_handlers(stop_main)

    try:
        if settings.console_enabled:
            run_console_loop(state, runner)
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
