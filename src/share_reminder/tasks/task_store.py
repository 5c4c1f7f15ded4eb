# src/share_reminder/tasks/task_store.py

from __future__ import annotations

import contextlib
import datetime as dt
import json
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from pathlib import Path

from ..errors import DuplicateTaskError, TaskStoreError
from ..extraction.models import TaskPriority, TaskSource
from .task_models import ReminderInterval, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - a unique index on idempotency_key rejects a second insert of the same share event

    Every sqlite3 error is re-raised as TaskStoreError.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = float(timeout)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except TaskStoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _session(self, op: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise TaskStoreError(f"{op}: cannot open {self._db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise TaskStoreError(f"{op} failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session("ensure_schema") as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    category_id TEXT NOT NULL DEFAULT 'general',
                    due_date TEXT,
                    due_datetime TEXT,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    source TEXT NOT NULL DEFAULT 'manual',
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    has_reminder INTEGER NOT NULL DEFAULT 0,
                    reminder_intervals TEXT NOT NULL DEFAULT '[]',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    completed_at REAL,
                    idempotency_key TEXT
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("category_id", "TEXT NOT NULL DEFAULT 'general'")
            add_col("due_date", "TEXT")
            add_col("due_datetime", "TEXT")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("source", "TEXT NOT NULL DEFAULT 'manual'")
            add_col("is_completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("has_reminder", "INTEGER NOT NULL DEFAULT 0")
            add_col("reminder_intervals", "TEXT NOT NULL DEFAULT '[]'")
            add_col("completed_at", "REAL")
            add_col("idempotency_key", "TEXT")

            cur.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_idempotency "
                "ON tasks(idempotency_key) WHERE idempotency_key IS NOT NULL"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_open ON tasks(is_completed, due_date)")

            conn.commit()

    @staticmethod
    def _intervals_to_str(intervals: Iterable[ReminderInterval]) -> str:
        return json.dumps(sorted(i.value for i in intervals))

    @staticmethod
    def _str_to_intervals(s: str | None) -> frozenset[ReminderInterval]:
        if not s:
            return frozenset()
        try:
            raw = json.loads(s)
        except ValueError:
            logger.warning("Corrupt reminder_intervals value %r; treating as empty", s)
            return frozenset()
        if not isinstance(raw, list):
            return frozenset()
        parsed = (ReminderInterval.from_db(str(x)) for x in raw)
        return frozenset(i for i in parsed if i is not None)

    @staticmethod
    def _parse_date(raw: str | None) -> dt.date | None:
        if not raw:
            return None
        try:
            return dt.date.fromisoformat(raw)
        except ValueError:
            return None

    @staticmethod
    def _parse_datetime(raw: str | None) -> dt.datetime | None:
        if not raw:
            return None
        try:
            return dt.datetime.fromisoformat(raw)
        except ValueError:
            return None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            category_id=str(row["category_id"] or "general"),
            due_date=self._parse_date(row["due_date"]),
            due_datetime=self._parse_datetime(row["due_datetime"]),
            priority=TaskPriority.from_db(row["priority"]),
            source=TaskSource.from_db(row["source"]),
            is_completed=bool(row["is_completed"]),
            has_reminder=bool(row["has_reminder"]),
            reminder_intervals=self._str_to_intervals(row["reminder_intervals"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            idempotency_key=row["idempotency_key"],
        )

    def _task_values(self, task: Task) -> tuple:
        return (
            task.title.strip(),
            task.description,
            task.category_id,
            task.due_date.isoformat() if task.due_date else None,
            task.due_datetime.isoformat() if task.due_datetime else None,
            task.priority.value,
            task.source.value,
            int(bool(task.is_completed)),
            int(bool(task.has_reminder)),
            self._intervals_to_str(task.reminder_intervals),
            task.completed_at,
            task.idempotency_key,
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._session("count_tasks") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def insert(self, task: Task) -> int:
        """Store a new task and return its id (task.id is ignored)."""
        if not task.title or not task.title.strip():
            raise ValueError("title is required")

        now = time.time()
        created_at = task.created_at or now

        with self._session("insert") as conn:
            cur = conn.cursor()
            try:
                cur.execute(
                    """
                    INSERT INTO tasks(
                        title, description, category_id, due_date, due_datetime,
                        priority, source, is_completed, has_reminder, reminder_intervals,
                        completed_at, idempotency_key, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*self._task_values(task), created_at, now),
                )
            except sqlite3.IntegrityError as exc:
                if task.idempotency_key:
                    raise DuplicateTaskError(task.idempotency_key) from exc
                raise
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise TaskStoreError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug(
                "Task added id=%s source=%s due_date=%s key=%s",
                task_id,
                task.source.value,
                task.due_date,
                task.idempotency_key,
            )
            return task_id

    def get_by_id(self, task_id: int) -> Task | None:
        with self._session("get_by_id") as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def update(self, task: Task) -> None:
        """Overwrite every mutable column of an existing task (id and created_at stay)."""
        with self._session("update") as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, category_id = ?, due_date = ?, due_datetime = ?,
                    priority = ?, source = ?, is_completed = ?, has_reminder = ?,
                    reminder_intervals = ?, completed_at = ?, idempotency_key = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (*self._task_values(task), time.time(), int(task.id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                logger.warning("update: task id=%s not found", task.id)

    def delete(self, task_id: int) -> bool:
        with self._session("delete") as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            return cur.rowcount == 1

    def set_completed(self, task_id: int, completed: bool = True) -> bool:
        now = time.time()
        with self._session("set_completed") as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET is_completed = ?, completed_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (int(completed), now if completed else None, now, int(task_id)),
            )
            conn.commit()
            return cur.rowcount == 1

    def release_idempotency_key(self, task_id: int) -> bool:
        """Clear the task's idempotency key without touching any other column."""
        with self._session("release_idempotency_key") as conn:
            cur = conn.execute(
                "UPDATE tasks SET idempotency_key = NULL WHERE id = ?", (int(task_id),)
            )
            conn.commit()
            return cur.rowcount == 1

    def find_by_idempotency_key(self, key: str) -> Task | None:
        if not key:
            return None
        with self._session("find_by_idempotency_key") as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE idempotency_key = ? LIMIT 1", (key,)
            ).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self, *, include_completed: bool = False, limit: int = 50) -> list[Task]:
        """Tasks ordered by due date (undated last), then creation time."""
        where = "" if include_completed else "WHERE is_completed = 0"
        with self._session("list_tasks") as conn:
            rows = conn.execute(
                f"""
                SELECT *
                FROM tasks
                {where}
                ORDER BY due_date IS NULL, COALESCE(due_datetime, due_date) ASC, created_at ASC
                    LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
