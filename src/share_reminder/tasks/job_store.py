# src/share_reminder/tasks/job_store.py

from __future__ import annotations

import contextlib
import datetime as dt
import json
import logging
import sqlite3
import time
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from ..errors import SchedulingError
from .task_models import JobKey, JobRecord, JobStatus

logger = logging.getLogger(__name__)


class JobStore:
    """
    SQLite-backed deferred-execution host.

    Implements the JobScheduler port (schedule_at / cancel) plus the claim API used
    by the job runner. One row per job key: scheduling an existing key overwrites it,
    so there is never more than one job per key.

    Row lifecycle:
        scheduled --claim--> running --done--> (row deleted)
                                    --retry--> scheduled (trigger pushed forward)
                                    --fail---> failed (kept for inspection)

    Each method opens its own SQLite connection. sqlite3 errors surface as SchedulingError.
    """

    def __init__(self, db_path: str | Path = "jobs.sqlite3", *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = float(timeout)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("JobStore ready db=%s pending=%s", self._db_path, self.count_jobs(JobStatus.SCHEDULED))

    def close(self) -> None:
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _session(self, op: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise SchedulingError(f"{op}: cannot open {self._db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise SchedulingError(f"{op} failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session("ensure_schema") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                    key TEXT PRIMARY KEY,
                    task_id INTEGER,
                    trigger_at REAL NOT NULL,
                    payload TEXT NOT NULL DEFAULT '{}',
                    status TEXT NOT NULL DEFAULT 'scheduled',
                    attempts INTEGER NOT NULL DEFAULT 0,
                    last_error TEXT,
                    updated_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(jobs)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE jobs ADD COLUMN {name} {decl}")
                logger.info("JobStore migration: added column %s", name)

            add_col("attempts", "INTEGER NOT NULL DEFAULT 0")
            add_col("last_error", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_jobs_due ON jobs(status, trigger_at)")
            conn.commit()

    @staticmethod
    def _payload_to_str(payload: Mapping[str, Any]) -> str:
        try:
            return json.dumps(dict(payload), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SchedulingError(f"payload is not JSON-serializable: {exc}") from exc

    @staticmethod
    def _str_to_payload(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            v = json.loads(s)
        except ValueError:
            logger.warning("Corrupt job payload %r; treating as empty", s)
            return {}
        return v if isinstance(v, dict) else {}

    def _row_to_job(self, row: sqlite3.Row) -> JobRecord:
        return JobRecord(
            key=str(row["key"]),
            task_id=int(row["task_id"]) if row["task_id"] is not None else None,
            trigger_at=float(row["trigger_at"]),
            payload=self._str_to_payload(row["payload"]),
            status=JobStatus.from_db(row["status"]),
            attempts=int(row["attempts"] or 0),
            last_error=row["last_error"],
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- JobScheduler port ----

    def schedule_at(self, key: str, trigger_at: dt.datetime, payload: Mapping[str, Any]) -> None:
        """Create the job or replace the one already under key (attempts reset)."""
        if not key:
            raise SchedulingError("job key is required")
        try:
            task_id: int | None = JobKey.parse(key).task_id
        except ValueError:
            task_id = None

        now = time.time()
        with self._session("schedule_at") as conn:
            conn.execute(
                """
                INSERT INTO jobs(key, task_id, trigger_at, payload, status, attempts, last_error, updated_at)
                VALUES (?, ?, ?, ?, ?, 0, NULL, ?)
                ON CONFLICT(key) DO UPDATE SET
                    task_id = excluded.task_id,
                    trigger_at = excluded.trigger_at,
                    payload = excluded.payload,
                    status = excluded.status,
                    attempts = 0,
                    last_error = NULL,
                    updated_at = excluded.updated_at
                """,
                (
                    key,
                    task_id,
                    trigger_at.timestamp(),
                    self._payload_to_str(payload),
                    JobStatus.SCHEDULED.value,
                    now,
                ),
            )
            conn.commit()
        logger.debug("Job scheduled key=%s trigger_at=%s", key, trigger_at)

    def cancel(self, key: str) -> bool:
        """
        Drop a pending job. Returns False when there was nothing to cancel.

        A job that is already running is left alone; the worker's fire-time
        re-check handles that race.
        """
        with self._session("cancel") as conn:
            cur = conn.execute(
                "DELETE FROM jobs WHERE key = ? AND status != ?",
                (key, JobStatus.RUNNING.value),
            )
            conn.commit()
            return cur.rowcount == 1

    # ---- runner API ----

    def get(self, key: str) -> JobRecord | None:
        with self._session("get") as conn:
            row = conn.execute("SELECT * FROM jobs WHERE key = ?", (key,)).fetchone()
            return self._row_to_job(row) if row else None

    def count_jobs(self, status: JobStatus | None = None) -> int:
        with self._session("count_jobs") as conn:
            if status is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM jobs WHERE status = ?", (status.value,)
                ).fetchone()
            return int(n)

    def list_jobs(self, *, task_id: int | None = None, limit: int = 100) -> list[JobRecord]:
        with self._session("list_jobs") as conn:
            if task_id is None:
                rows = conn.execute(
                    "SELECT * FROM jobs ORDER BY trigger_at ASC LIMIT ?", (int(limit),)
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM jobs WHERE task_id = ? ORDER BY trigger_at ASC LIMIT ?",
                    (int(task_id), int(limit)),
                ).fetchall()
            return [self._row_to_job(r) for r in rows]

    def list_due(self, now_ts: float, limit: int = 32) -> list[JobRecord]:
        with self._session("list_due") as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM jobs
                WHERE status = ? AND trigger_at <= ?
                ORDER BY trigger_at ASC
                    LIMIT ?
                """,
                (JobStatus.SCHEDULED.value, float(now_ts), int(limit)),
            ).fetchall()
            return [self._row_to_job(r) for r in rows]

    def try_claim(self, key: str) -> bool:
        """Atomically flip scheduled -> running and count the attempt. False if someone else won."""
        with self._session("try_claim") as conn:
            cur = conn.execute(
                """
                UPDATE jobs
                SET status = ?, attempts = attempts + 1, updated_at = ?
                WHERE key = ? AND status = ?
                """,
                (JobStatus.RUNNING.value, time.time(), key, JobStatus.SCHEDULED.value),
            )
            conn.commit()
            return cur.rowcount == 1

    def mark_done(self, key: str) -> None:
        with self._session("mark_done") as conn:
            conn.execute(
                "DELETE FROM jobs WHERE key = ? AND status = ?", (key, JobStatus.RUNNING.value)
            )
            conn.commit()

    def mark_failed(self, key: str, error: str) -> None:
        with self._session("mark_failed") as conn:
            conn.execute(
                """
                UPDATE jobs
                SET status = ?, last_error = ?, updated_at = ?
                WHERE key = ? AND status = ?
                """,
                (JobStatus.FAILED.value, error, time.time(), key, JobStatus.RUNNING.value),
            )
            conn.commit()

    def retry_later(self, key: str, delay_s: float, error: str | None = None) -> None:
        now = time.time()
        with self._session("retry_later") as conn:
            conn.execute(
                """
                UPDATE jobs
                SET status = ?, trigger_at = ?, last_error = ?, updated_at = ?
                WHERE key = ? AND status = ?
                """,
                (
                    JobStatus.SCHEDULED.value,
                    now + max(0.0, float(delay_s)),
                    error,
                    now,
                    key,
                    JobStatus.RUNNING.value,
                ),
            )
            conn.commit()

    def release_stale(self, older_than_s: float = 600.0) -> int:
        """Put jobs stuck in running (runner crashed mid-job) back to scheduled."""
        cutoff = time.time() - max(0.0, float(older_than_s))
        with self._session("release_stale") as conn:
            cur = conn.execute(
                "UPDATE jobs SET status = ? WHERE status = ? AND updated_at < ?",
                (JobStatus.SCHEDULED.value, JobStatus.RUNNING.value, cutoff),
            )
            conn.commit()
            if cur.rowcount:
                logger.warning("Released %d stale running job(s)", cur.rowcount)
            return int(cur.rowcount)
