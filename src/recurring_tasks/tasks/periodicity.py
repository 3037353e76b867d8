# src/recurring_tasks/tasks/periodicity.py

"""
Due-date arithmetic for recurring tasks.

Pure functions only: no clock, no storage.

Calendar months and years go through dateutil's relativedelta, which clamps to
the last valid day of the target month (Jan 31 + 1 month -> Feb 28/29,
Feb 29 + 1 year -> Feb 28). Day-based periods are plain timedeltas.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from dateutil.relativedelta import relativedelta

from .task_models import CustomPeriodicity, Periodicity, PeriodType, Task

DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25


class DueDateAnchor(StrEnum):
    """
    Which instant the next due date is counted from when a task is validated.

    VALIDATION_TIME: now + one period. Late or early completions shift the cadence.
    PREVIOUS_DUE_DATE: previous due date + one period. The cadence never drifts.
    """

    VALIDATION_TIME = "validation_time"
    PREVIOUS_DUE_DATE = "previous_due_date"

    @classmethod
    def parse(cls, raw: str | None) -> DueDateAnchor:
        if not raw:
            return cls.VALIDATION_TIME
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.VALIDATION_TIME


def _one_period(periodicity: Periodicity) -> timedelta | relativedelta | None:
    ptype = periodicity.type
    if ptype == PeriodType.DAILY:
        return timedelta(days=1)
    if ptype == PeriodType.WEEKLY:
        return timedelta(days=7)
    if ptype == PeriodType.MONTHLY:
        return relativedelta(months=1)
    if ptype == PeriodType.YEARLY:
        return relativedelta(years=1)
    if isinstance(periodicity, CustomPeriodicity):
        return timedelta(days=periodicity.interval or 1)
    return None


def add_period(instant: datetime, periodicity: Periodicity) -> datetime:
    step = _one_period(periodicity)
    if step is None:
        return instant
    return instant + step


def subtract_period(instant: datetime, periodicity: Periodicity) -> datetime:
    step = _one_period(periodicity)
    if step is None:
        return instant
    return instant - step


def compute_next_due_date(anchor: datetime, periodicity: Periodicity) -> datetime:
    """
    Next due date one period after `anchor`.

    Non-recurring rules return `anchor` unchanged; such tasks are archived on
    validation instead of being rescheduled.
    """
    if not periodicity.is_recurring:
        return anchor
    return add_period(anchor, periodicity)


def next_due_date_after_validation(
    task: Task,
    validated_at: datetime,
    anchor: DueDateAnchor = DueDateAnchor.VALIDATION_TIME,
) -> datetime:
    if not task.is_recurring:
        return task.due_date
    if anchor == DueDateAnchor.PREVIOUS_DUE_DATE:
        return compute_next_due_date(task.due_date, task.periodicity)
    return compute_next_due_date(validated_at, task.periodicity)


def current_period_start(task: Task, now: datetime | None = None) -> datetime:
    """
    Start of the period the task is currently in.

    One-shot tasks span creation -> due date. Recurring tasks span exactly one
    period ending at the due date. `now` is accepted for interface symmetry with
    the classifier; the result does not depend on it.
    """
    if not task.is_recurring:
        return task.creation_date
    return subtract_period(task.due_date, task.periodicity)


def period_length(periodicity: Periodicity) -> timedelta | None:
    """Nominal period length used for threshold sizing (months/years are averaged)."""
    ptype = periodicity.type
    if ptype == PeriodType.DAILY:
        return timedelta(days=1)
    if ptype == PeriodType.WEEKLY:
        return timedelta(days=7)
    if ptype == PeriodType.MONTHLY:
        return timedelta(days=DAYS_PER_MONTH)
    if ptype == PeriodType.YEARLY:
        return timedelta(days=DAYS_PER_YEAR)
    if isinstance(periodicity, CustomPeriodicity):
        return timedelta(days=periodicity.interval)
    return None
