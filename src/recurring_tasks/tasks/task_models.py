# src/recurring_tasks/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal


class PeriodType(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class TaskStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.ACTIVE


@dataclass(slots=True, frozen=True)
class FixedPeriodicity:
    """A recurrence rule without a payload (none/daily/weekly/monthly/yearly)."""

    type: PeriodType

    def __post_init__(self) -> None:
        if self.type == PeriodType.CUSTOM:
            raise ValueError("custom periodicity needs an interval; use CustomPeriodicity")

    @property
    def is_recurring(self) -> bool:
        return self.type != PeriodType.NONE

    @property
    def interval(self) -> None:
        return None


@dataclass(slots=True, frozen=True)
class CustomPeriodicity:
    """Every `interval` days."""

    interval: int = 1
    type: Literal[PeriodType.CUSTOM] = field(default=PeriodType.CUSTOM, init=False)

    def __post_init__(self) -> None:
        if int(self.interval) < 1:
            raise ValueError(f"custom interval must be >= 1, got {self.interval}")

    @property
    def is_recurring(self) -> bool:
        return True


Periodicity = FixedPeriodicity | CustomPeriodicity

ONE_SHOT = FixedPeriodicity(PeriodType.NONE)
DAILY = FixedPeriodicity(PeriodType.DAILY)
WEEKLY = FixedPeriodicity(PeriodType.WEEKLY)
MONTHLY = FixedPeriodicity(PeriodType.MONTHLY)
YEARLY = FixedPeriodicity(PeriodType.YEARLY)


def periodicity_from_dict(data: dict[str, Any] | None) -> Periodicity:
    """
    Decode the stored periodicity shape: {"type", "interval"?, "isRecurring"?}.

    Unknown types decode as one-shot. An explicit isRecurring=false wins over the type.
    """
    if not isinstance(data, dict):
        return ONE_SHOT

    try:
        ptype = PeriodType(str(data.get("type") or "none").lower())
    except ValueError:
        return ONE_SHOT

    if data.get("isRecurring") is False:
        return ONE_SHOT

    if ptype == PeriodType.CUSTOM:
        raw = data.get("interval")
        try:
            interval = int(raw) if raw is not None else 1
        except (TypeError, ValueError):
            interval = 1
        return CustomPeriodicity(max(1, interval))

    return FixedPeriodicity(ptype)


def periodicity_to_dict(p: Periodicity) -> dict[str, Any]:
    out: dict[str, Any] = {"type": p.type.value, "isRecurring": p.is_recurring}
    if isinstance(p, CustomPeriodicity):
        out["interval"] = p.interval
    return out


def parse_periodicity(raw: str) -> Periodicity:
    """
    Parse the short CLI form: "weekly", "none", "custom:3".

    Raises ValueError on anything else.
    """
    s = (raw or "").strip().lower()
    if not s:
        raise ValueError("periodicity is required")

    if s.startswith("custom"):
        _, _, days = s.partition(":")
        return CustomPeriodicity(int(days) if days else 1)

    return FixedPeriodicity(PeriodType(s))


@dataclass(slots=True)
class Comment:
    id: str
    text: str
    date: datetime
    is_validation: bool = False


@dataclass(slots=True)
class Task:
    id: str
    title: str
    periodicity: Periodicity
    creation_date: datetime
    due_date: datetime

    description: str | None = None
    comments: list[Comment] = field(default_factory=list)
    status: TaskStatus = TaskStatus.ACTIVE

    @property
    def is_recurring(self) -> bool:
        return self.periodicity.is_recurring

    @property
    def is_active(self) -> bool:
        return self.status == TaskStatus.ACTIVE
