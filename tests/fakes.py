# tests/fakes.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from recurring_tasks.notifications.models import Reminder, ReminderAction
from recurring_tasks.tasks.periodicity import DueDateAnchor, next_due_date_after_validation
from recurring_tasks.tasks.task_models import ONE_SHOT, Comment, Periodicity, Task, TaskStatus


class FakeClock:
    """Manually advanced clock; pass the instance wherever a Clock is expected."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakePresenter:
    """
    ReminderPresenter used by scheduler tests.

    - Records every reminder and details request
    - Either answers immediately with `action`, or (hold=True) keeps each prompt
      open until the test resolves it
    - fail=True simulates a UI that cannot display anything
    """

    def __init__(
        self,
        action: ReminderAction | None = None,
        *,
        hold: bool = False,
        fail: bool = False,
        comment: str | None = None,
    ) -> None:
        self.action = action
        self.hold = hold
        self.fail = fail
        self.comment = comment
        self.reminders: list[Reminder] = []
        self.details: list[Task] = []
        self.open: list[asyncio.Future[ReminderAction | None]] = []

    async def present_reminder(self, reminder: Reminder) -> ReminderAction | None:
        self.reminders.append(reminder)
        if self.fail:
            raise RuntimeError("display unavailable")
        if self.hold:
            fut: asyncio.Future[ReminderAction | None] = asyncio.get_running_loop().create_future()
            self.open.append(fut)
            return await fut
        return self.action

    def resolve(self, index: int, action: ReminderAction | None) -> None:
        self.open[index].set_result(action)

    async def show_task_details(self, task: Task) -> None:
        self.details.append(task)

    async def prompt_validation_comment(self, task: Task) -> str | None:
        return self.comment


class FakeTaskRepo:
    """
    In-memory TaskRepo used for scheduler unit tests.

    This avoids SQLite and makes tests purely about scheduling logic.
    """

    def __init__(
        self,
        tasks: list[Task],
        clock: FakeClock,
        anchor: DueDateAnchor = DueDateAnchor.VALIDATION_TIME,
    ) -> None:
        self.tasks = {t.id: t for t in tasks}
        self.clock = clock
        self.anchor = anchor
        self.fail_listing = False

    def list_active_tasks(self) -> list[Task]:
        if self.fail_listing:
            raise RuntimeError("store offline")
        return [t for t in self.tasks.values() if t.status == TaskStatus.ACTIVE]

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def validate_task(self, task_id: str, comment_text: str = "") -> Task | None:
        task = self.tasks.get(task_id)
        if task is None:
            return None
        now = self.clock()
        task.comments.append(
            Comment(id=f"c{len(task.comments) + 1}", text=comment_text or "validated", date=now, is_validation=True)
        )
        if task.is_recurring:
            task.due_date = next_due_date_after_validation(task, now, self.anchor)
        else:
            task.status = TaskStatus.ARCHIVED
        return task


# Tuesday, midday UTC: hours either side stay on the same calendar day.
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_task(
    *,
    task_id: str = "t1",
    title: str = "Water the plants",
    periodicity: Periodicity = ONE_SHOT,
    due: datetime | None = None,
    created: datetime | None = None,
    status: TaskStatus = TaskStatus.ACTIVE,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        periodicity=periodicity,
        creation_date=created or NOW - timedelta(days=10),
        due_date=due or NOW + timedelta(days=1),
        status=status,
    )
