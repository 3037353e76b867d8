# src/recurring_tasks/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .periodicity import DueDateAnchor, next_due_date_after_validation
from .status import Clock, local_now
from .task_models import (
    Comment,
    Periodicity,
    Task,
    TaskStatus,
    periodicity_from_dict,
    periodicity_to_dict,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


def _new_task_id() -> str:
    return uuid.uuid4().hex


def _new_comment_id() -> str:
    return f"comment_{uuid.uuid4().hex}"


def _dt_to_str(dt: datetime) -> str:
    return dt.isoformat()


def _str_to_dt(s: str | None, default: datetime) -> datetime:
    if not s:
        return default
    try:
        dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
    except ValueError:
        return default
    if dt.tzinfo is None:
        # No offset means local wall-clock time.
        dt = dt.astimezone()
    return dt


@dataclass(slots=True)
class ImportResult:
    success: bool
    imported: int
    errors: list[str] = field(default_factory=list)
    message: str = ""


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Ordering: tasks and comments come back in insertion order (rowid).

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(
        self,
        db_path: str | Path = "tasks.sqlite3",
        *,
        anchor: DueDateAnchor = DueDateAnchor.VALIDATION_TIME,
        clock: Clock | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._anchor = anchor
        self._clock: Clock = clock or local_now
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s anchor=%s", self._db_path, total, anchor.value)

    @property
    def anchor(self) -> DueDateAnchor:
        return self._anchor

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    periodicity TEXT NOT NULL DEFAULT '{"type": "none"}',
                    creation_date TEXT NOT NULL,
                    due_date TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS comments (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    text TEXT NOT NULL DEFAULT '',
                    date TEXT NOT NULL,
                    is_validation INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("periodicity", "TEXT NOT NULL DEFAULT '{\"type\": \"none\"}'")
            add_col("status", "TEXT NOT NULL DEFAULT 'active'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due_date)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_comments_task ON comments(task_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _periodicity_to_str(p: Periodicity) -> str:
        return json.dumps(periodicity_to_dict(p))

    @staticmethod
    def _str_to_periodicity(s: str | None) -> Periodicity:
        if not s:
            return periodicity_from_dict(None)
        try:
            return periodicity_from_dict(json.loads(s))
        except ValueError:
            logger.warning("Unreadable periodicity %r; treating as one-shot", s)
            return periodicity_from_dict(None)

    def _load_comments(self, conn: sqlite3.Connection, task_id: str) -> list[Comment]:
        now = self._clock()
        cur = conn.execute(
            "SELECT * FROM comments WHERE task_id = ? ORDER BY rowid ASC",
            (task_id,),
        )
        return [
            Comment(
                id=str(r["id"]),
                text=str(r["text"] or ""),
                date=_str_to_dt(r["date"], now),
                is_validation=bool(r["is_validation"]),
            )
            for r in cur.fetchall()
        ]

    def _row_to_task(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Task:
        now = self._clock()
        task_id = str(row["id"])
        return Task(
            id=task_id,
            title=str(row["title"] or ""),
            description=row["description"],
            periodicity=self._str_to_periodicity(row["periodicity"]),
            creation_date=_str_to_dt(row["creation_date"], now),
            due_date=_str_to_dt(row["due_date"], now),
            comments=self._load_comments(conn, task_id),
            status=TaskStatus.from_db(row["status"]),
        )

    def _select_tasks(self, where: str = "", params: tuple[Any, ...] = ()) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.execute(f"SELECT * FROM tasks {where} ORDER BY rowid ASC", params)
            return [self._row_to_task(conn, r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _insert_task(self, conn: sqlite3.Connection, task: Task) -> None:
        conn.execute(
            """
            INSERT INTO tasks(id, title, description, periodicity, creation_date, due_date, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.title,
                task.description,
                self._periodicity_to_str(task.periodicity),
                _dt_to_str(task.creation_date),
                _dt_to_str(task.due_date),
                task.status.value,
            ),
        )
        for c in task.comments:
            self._insert_comment(conn, task.id, c)

    @staticmethod
    def _insert_comment(conn: sqlite3.Connection, task_id: str, comment: Comment) -> None:
        conn.execute(
            "INSERT INTO comments(id, task_id, text, date, is_validation) VALUES (?, ?, ?, ?, ?)",
            (comment.id, task_id, comment.text, _dt_to_str(comment.date), int(comment.is_validation)),
        )

    # ---- queries ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        tasks = self._select_tasks("WHERE id = ?", (str(task_id),))
        return tasks[0] if tasks else None

    def list_active_tasks(self) -> list[Task]:
        return self._select_tasks("WHERE status = 'active'")

    def list_archived_tasks(self) -> list[Task]:
        return self._select_tasks("WHERE status = 'archived'")

    def list_all_tasks(self) -> list[Task]:
        return self._select_tasks()

    def list_overdue_tasks(self, now: datetime | None = None) -> list[Task]:
        # ISO strings with mixed offsets do not sort chronologically; compare in Python.
        now = now or self._clock()
        return [t for t in self.list_active_tasks() if t.due_date < now]

    # ---- mutations ----

    def add_task(
        self,
        *,
        title: str,
        periodicity: Periodicity,
        due_date: datetime,
        description: str | None = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        task = Task(
            id=_new_task_id(),
            title=title.strip(),
            description=(description or "").strip() or None,
            periodicity=periodicity,
            creation_date=self._clock(),
            due_date=due_date,
        )

        conn = self._get_conn()
        try:
            self._insert_task(conn, task)
            conn.commit()
        finally:
            conn.close()

        logger.debug(
            "Task added id=%s type=%s due=%s", task.id, task.periodicity.type.value, task.due_date
        )
        return task

    def validate_task(self, task_id: str, comment_text: str = "") -> Task | None:
        """
        Record a completion.

        Appends a validation comment, then archives one-shot tasks or moves the due
        date of recurring ones forward according to the configured anchor.
        Returns None when the task does not exist.
        """
        task = self.get_task(task_id)
        if task is None:
            return None

        now = self._clock()
        text = (comment_text or "").strip() or f"Task validated on {now.date().isoformat()}"
        comment = Comment(id=_new_comment_id(), text=text, date=now, is_validation=True)
        task.comments.append(comment)

        if task.is_recurring:
            task.due_date = next_due_date_after_validation(task, now, self._anchor)
        else:
            task.status = TaskStatus.ARCHIVED

        conn = self._get_conn()
        try:
            self._insert_comment(conn, task.id, comment)
            conn.execute(
                "UPDATE tasks SET due_date = ?, status = ? WHERE id = ?",
                (_dt_to_str(task.due_date), task.status.value, task.id),
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(
            "Task validated id=%s status=%s next_due=%s", task.id, task.status.value, task.due_date
        )
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        periodicity: Periodicity | None = None,
        due_date: datetime | None = None,
    ) -> Task | None:
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            if not title.strip():
                raise ValueError("title cannot be empty")
            fields.append("title = ?")
            params.append(title.strip())

        if description is not None:
            fields.append("description = ?")
            params.append(description.strip() or None)

        if periodicity is not None:
            fields.append("periodicity = ?")
            params.append(self._periodicity_to_str(periodicity))

        if due_date is not None:
            fields.append("due_date = ?")
            params.append(_dt_to_str(due_date))

        if fields:
            params.append(str(task_id))
            conn = self._get_conn()
            try:
                conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
                conn.commit()
            finally:
                conn.close()

        return self.get_task(task_id)

    def _set_status(self, task_id: str, status: TaskStatus) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("UPDATE tasks SET status = ? WHERE id = ?", (status.value, str(task_id)))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def archive_task(self, task_id: str) -> bool:
        return self._set_status(task_id, TaskStatus.ARCHIVED)

    def unarchive_task(self, task_id: str) -> bool:
        return self._set_status(task_id, TaskStatus.ACTIVE)

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            conn.execute("DELETE FROM comments WHERE task_id = ?", (str(task_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- comments ----

    def add_comment(self, task_id: str, text: str) -> Task | None:
        if self.get_task(task_id) is None:
            return None
        comment = Comment(id=_new_comment_id(), text=text, date=self._clock(), is_validation=False)
        conn = self._get_conn()
        try:
            self._insert_comment(conn, str(task_id), comment)
            conn.commit()
        finally:
            conn.close()
        return self.get_task(task_id)

    def update_comment(self, task_id: str, comment_id: str, new_text: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE comments SET text = ?, date = ? WHERE id = ? AND task_id = ?",
                (new_text, _dt_to_str(self._clock()), comment_id, str(task_id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
        finally:
            conn.close()
        return self.get_task(task_id)

    def delete_comment(self, task_id: str, comment_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM comments WHERE id = ? AND task_id = ?", (comment_id, str(task_id))
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
        finally:
            conn.close()
        return self.get_task(task_id)

    # ---- import / export ----

    @staticmethod
    def task_to_dict(task: Task) -> dict[str, Any]:
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "periodicity": periodicity_to_dict(task.periodicity),
            "creationDate": _dt_to_str(task.creation_date),
            "dueDate": _dt_to_str(task.due_date),
            "comments": [
                {
                    "id": c.id,
                    "text": c.text,
                    "date": _dt_to_str(c.date),
                    "isValidation": c.is_validation,
                }
                for c in task.comments
            ],
            "status": task.status.value,
        }

    def export_tasks(self) -> str:
        data = {
            "exportDate": _dt_to_str(self._clock()),
            "version": EXPORT_VERSION,
            "tasks": [self.task_to_dict(t) for t in self.list_all_tasks()],
        }
        return json.dumps(data, ensure_ascii=False, indent=2)

    def import_tasks(self, json_text: str) -> ImportResult:
        """
        Merge tasks from an export into the store (existing tasks are kept).

        Duplicate ids get a fresh id; malformed entries are skipped and reported.
        """
        try:
            data = json.loads(json_text)
        except ValueError as e:
            return ImportResult(
                success=False,
                imported=0,
                errors=[f"JSON parsing error: {e}"],
                message="Import failed: Invalid JSON format",
            )

        raw_tasks = data.get("tasks") if isinstance(data, dict) else None
        if not isinstance(raw_tasks, list):
            return ImportResult(
                success=False,
                imported=0,
                errors=["Invalid JSON format: tasks array not found"],
                message="Import failed: Invalid JSON format",
            )

        now = self._clock()
        stored = self.list_all_tasks()
        existing = {t.id for t in stored}
        comment_ids = {c.id for t in stored for c in t.comments}
        errors: list[str] = []
        to_insert: list[Task] = []

        for i, raw in enumerate(raw_tasks, start=1):
            if not isinstance(raw, dict) or not raw.get("id") or not raw.get("title") or not raw.get("periodicity"):
                errors.append(f"Task {i}: Missing required fields (id, title, or periodicity)")
                continue

            task_id = str(raw["id"])
            duplicate = task_id in existing
            if duplicate:
                new_id = _new_task_id()
                errors.append(f'Task "{raw["title"]}": Duplicate ID {task_id} found, assigned new ID {new_id}')
                task_id = new_id

            comments: list[Comment] = []
            for c in raw.get("comments") or []:
                if not isinstance(c, dict):
                    continue
                comment_id = str(c.get("id") or "")
                # Comment ids are global primary keys; reused ones get a fresh id.
                if duplicate or not comment_id or comment_id in comment_ids:
                    comment_id = _new_comment_id()
                comment_ids.add(comment_id)
                comments.append(
                    Comment(
                        id=comment_id,
                        text=str(c.get("text") or ""),
                        date=_str_to_dt(c.get("date"), now),
                        is_validation=bool(c.get("isValidation", False)),
                    )
                )

            to_insert.append(
                Task(
                    id=task_id,
                    title=str(raw["title"]),
                    description=raw.get("description") or None,
                    periodicity=periodicity_from_dict(raw["periodicity"]),
                    creation_date=_str_to_dt(raw.get("creationDate"), now),
                    due_date=_str_to_dt(raw.get("dueDate"), now),
                    comments=comments,
                    status=TaskStatus.from_db(raw.get("status")),
                )
            )
            existing.add(task_id)

        if to_insert:
            conn = self._get_conn()
            try:
                for task in to_insert:
                    self._insert_task(conn, task)
                conn.commit()
            finally:
                conn.close()

        imported = len(to_insert)
        message = (
            f"Successfully imported {imported} task{'' if imported == 1 else 's'}"
            if imported
            else "No tasks were imported"
        )
        if errors:
            message = f"{message}. {len(errors)} warning(s)/error(s) occurred."

        logger.info("Import finished imported=%s errors=%s", imported, len(errors))
        return ImportResult(success=imported > 0, imported=imported, errors=errors, message=message)
