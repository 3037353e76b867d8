# src/recurring_tasks/tasks/status.py

"""
Urgency and progress classification for tasks.

Every check is relative to "now", taken from an injectable clock so tests can
pin time. Calendar-day comparisons happen in the timezone of "now".
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum

from .periodicity import current_period_start, period_length
from .task_models import CustomPeriodicity, PeriodType, Task, TaskStatus

Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)
MIN_DUE_SOON = timedelta(days=1)
MAX_DUE_SOON = timedelta(days=30)

INDICATOR_OVERDUE = "🔴"
INDICATOR_DUE_SOON = "🟡"
INDICATOR_ON_TRACK = "✅"


def local_now() -> datetime:
    return datetime.now().astimezone()


def calendar_day(instant: datetime, reference: datetime) -> date:
    """Calendar date of `instant` as seen from the timezone of `reference`."""
    if instant.tzinfo is not None and reference.tzinfo is not None:
        return instant.astimezone(reference.tzinfo).date()
    return instant.date()


def same_calendar_day(a: datetime, b: datetime) -> bool:
    return calendar_day(a, b) == calendar_day(b, b)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def _uses_same_day_rule(task: Task) -> bool:
    """Daily and very short custom cadences: 'due soon' means 'due today'."""
    p = task.periodicity
    if p.type == PeriodType.DAILY:
        return True
    return isinstance(p, CustomPeriodicity) and p.interval <= 2


class TaskHealth(StrEnum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"
    ONE_SHOT_COMPLETED = "one_shot_completed"


@dataclass(slots=True, frozen=True)
class StatusReport:
    """Everything the presentation layer needs to render one task's status."""

    health: TaskHealth
    phase: str
    progress: int
    time_remaining: str
    descriptor: str


class StatusClassifier:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or local_now

    def now(self) -> datetime:
        return self._clock()

    # ---- urgency ----

    def is_overdue(self, task: Task) -> bool:
        return task.due_date < self.now()

    def due_soon_threshold(self, task: Task) -> timedelta:
        """
        Window before the due date during which the task counts as "due soon".

        Sized as a fraction of the period, clamped to [1 day, 30 days]. One-shot,
        daily and custom(<=2 days) tasks use a flat day with no clamp.
        """
        p = task.periodicity
        if not p.is_recurring or _uses_same_day_rule(task):
            return ONE_DAY

        length = period_length(p)
        if length is None:
            return ONE_DAY

        if p.type == PeriodType.WEEKLY:
            pct = 0.30
        elif p.type == PeriodType.MONTHLY:
            pct = 0.20
        elif p.type == PeriodType.YEARLY:
            pct = 0.05
        elif isinstance(p, CustomPeriodicity) and p.interval <= 7:
            pct = 0.40
        elif isinstance(p, CustomPeriodicity) and p.interval <= 30:
            pct = 0.25
        else:
            pct = 0.10

        return max(MIN_DUE_SOON, min(MAX_DUE_SOON, length * pct))

    def is_due_soon(self, task: Task) -> bool:
        if self.is_overdue(task):
            return False
        now = self.now()
        if _uses_same_day_rule(task):
            return same_calendar_day(task.due_date, now)
        return task.due_date <= now + self.due_soon_threshold(task)

    def time_remaining(self, task: Task) -> str:
        now = self.now()
        days = (calendar_day(task.due_date, now) - calendar_day(now, now)).days

        if days < 0:
            return f"overdue by {_plural(-days, 'day')}"
        if days == 0:
            return "due today"
        if days == 1:
            return "due tomorrow"
        if days <= 7:
            return f"due in {days} days"
        return f"due in {_plural(math.ceil(days / 7), 'week')}"

    # ---- progress ----

    def time_progress(self, task: Task) -> int:
        """Elapsed share (0..100) of the current period, or of creation->due for one-shots."""
        now = self.now()
        due = task.due_date

        if not task.is_recurring and now > due:
            return 100

        start = current_period_start(task, now)
        total = (due - start).total_seconds()
        if total <= 0:
            return 100 if now >= due else 0

        elapsed = (now - start).total_seconds()
        pct = min(max(elapsed / total * 100.0, 0.0), 100.0)
        return _round_half_up(pct)

    @staticmethod
    def progress_bar(progress: int) -> str:
        filled = max(0, min(10, progress // 10))
        return "█" * filled + "░" * (10 - filled)

    # ---- composite ----

    def classify(self, task: Task) -> TaskHealth:
        if task.status == TaskStatus.ARCHIVED and not task.is_recurring:
            return TaskHealth.ONE_SHOT_COMPLETED
        if self.is_overdue(task):
            return TaskHealth.OVERDUE
        if self.is_due_soon(task):
            return TaskHealth.DUE_SOON
        return TaskHealth.ON_TRACK

    def describe(self, task: Task) -> StatusReport:
        health = self.classify(task)

        if health == TaskHealth.ONE_SHOT_COMPLETED:
            return StatusReport(
                health=health,
                phase="one_shot_completed",
                progress=100,
                time_remaining="completed",
                descriptor=f"{INDICATOR_ON_TRACK} Completed",
            )

        progress = self.time_progress(task)
        remaining = self.time_remaining(task)

        if health == TaskHealth.OVERDUE:
            if progress >= 100:
                phase = "complete_but_overdue"
                text = f"{INDICATOR_OVERDUE} Overdue ({remaining})"
            else:
                phase = "in_progress_but_overdue"
                text = f"{INDICATOR_OVERDUE} Overdue - {progress}% complete ({remaining})"
        elif health == TaskHealth.DUE_SOON:
            phase = "due_soon"
            text = f"{INDICATOR_DUE_SOON} Due soon - {progress}% complete ({remaining})"
        elif progress >= 100:
            phase = "complete"
            text = f"{INDICATOR_ON_TRACK} Complete ({remaining})"
        elif progress >= 50:
            phase = "mostly_done"
            text = f"{INDICATOR_ON_TRACK} {progress}% complete ({remaining})"
        else:
            phase = "in_progress"
            text = f"{INDICATOR_ON_TRACK} {progress}% complete ({remaining})"

        return StatusReport(
            health=health,
            phase=phase,
            progress=progress,
            time_remaining=remaining,
            descriptor=text,
        )

    def comprehensive_status(self, task: Task) -> str:
        return self.describe(task).descriptor

    def mixed_status(self, task: Task) -> str:
        """Compact one-liner for list views: indicator, bar, percent, time remaining."""
        health = self.classify(task)
        if health == TaskHealth.ONE_SHOT_COMPLETED:
            return f"{INDICATOR_ON_TRACK} {self.progress_bar(100)} 100% | completed"

        if health == TaskHealth.OVERDUE:
            indicator = INDICATOR_OVERDUE
        elif health == TaskHealth.DUE_SOON:
            indicator = INDICATOR_DUE_SOON
        else:
            indicator = INDICATOR_ON_TRACK

        progress = self.time_progress(task)
        return f"{indicator} {self.progress_bar(progress)} {progress}% | {self.time_remaining(task)}"
