# src/recurring_tasks/core/loop_runner.py

"""
Background event loop that owns the notification scheduler.

The console REPL blocks on input(), so the scheduler gets its own thread and
event loop. Everything that touches scheduler state (the periodic sweep, reminder
answers, commands) is funnelled onto that one loop, which keeps the state map
single-writer without locks.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .state import AppState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, fn: Callable[..., T], *args: Any, timeout: float | None = 30.0) -> T:
        """Run a plain function on the scheduler loop and wait for its result."""

        async def _invoke() -> T:
            return fn(*args)

        fut = asyncio.run_coroutine_threadsafe(_invoke(), self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal scheduler stop (loop already closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_scheduler(state: AppState, stop_event: asyncio.Event) -> None:
    state.scheduler.start()
    try:
        await stop_event.wait()
    finally:
        await state.scheduler.stop()


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_scheduler(state, stop_event))
        except Exception:
            logger.exception("Scheduler loop crashed.")
        finally:
            with contextlib.suppress(RuntimeError):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name="notification-loop", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
