# src/share_reminder/tasks/materializer.py

from __future__ import annotations

"""
Task materializer: confirmed candidate -> persisted Task.

The host may re-deliver the same share event (app restart, retried intent).
Each materialization is keyed by a stable hash of the share event and a repeat
inside the trailing window returns the task that already exists.
"""

import datetime as dt
import hashlib
import logging
import math
import threading
import time
from collections.abc import Callable, Iterable

from ..core.ports import TaskRepo
from ..errors import DuplicateTaskError, TaskStoreError
from ..extraction.models import ExtractedCandidate, TaskSource
from .task_models import ReminderInterval, Task

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_INTERVALS: frozenset[ReminderInterval] = frozenset({ReminderInterval.ONE_DAY})

_LOCK_STRIPES = 64


def idempotency_key(original_text: str, source: TaskSource, received_at: dt.datetime) -> str:
    """SHA-256 over (text, source, receipt time truncated to the minute)."""
    minute = received_at.replace(second=0, microsecond=0).isoformat()
    raw = "\x1f".join((original_text or "", str(source), minute))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def nearby_keys(
    original_text: str, source: TaskSource, received_at: dt.datetime, window_seconds: float
) -> list[str]:
    """
    Keys a replay of this share event may have been stored under.

    The receipt minute comes first, then the minutes either side of it, nearest first,
    out to as many minutes as the dedup window spans.
    """
    keys = [idempotency_key(original_text, source, received_at)]
    for step in range(1, math.ceil(window_seconds / 60) + 1):
        for sign in (-1, 1):
            moved = received_at + dt.timedelta(minutes=sign * step)
            keys.append(idempotency_key(original_text, source, moved))
    return keys


class TaskMaterializer:
    def __init__(
        self,
        store: TaskRepo,
        *,
        dedup_window_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._window = max(0.0, float(dedup_window_seconds))
        self._clock = clock
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, original_text: str, source: TaskSource) -> threading.Lock:
        # Replays in neighbouring minutes have different keys, so stripe on the event itself.
        return self._locks[hash((original_text or "", str(source))) % _LOCK_STRIPES]

    def build_task(
        self,
        candidate: ExtractedCandidate,
        category_id: str,
        *,
        reminder_intervals: Iterable[ReminderInterval] | None = None,
    ) -> Task:
        """Unsaved Task (id == 0) carrying the reminder policy for this candidate."""
        due_datetime = None
        if candidate.date is not None and candidate.time is not None:
            due_datetime = dt.datetime.combine(candidate.date, candidate.time)

        has_reminder = candidate.date is not None
        if not has_reminder:
            intervals: frozenset[ReminderInterval] = frozenset()
        elif reminder_intervals is None:
            intervals = DEFAULT_REMINDER_INTERVALS
        else:
            intervals = frozenset(reminder_intervals)

        now = self._clock()
        return Task(
            id=0,
            title=candidate.title,
            description=candidate.description,
            category_id=category_id,
            due_date=candidate.date,
            due_datetime=due_datetime,
            priority=candidate.inferred_priority,
            source=candidate.source,
            has_reminder=has_reminder,
            reminder_intervals=intervals,
            created_at=now,
            updated_at=now,
            idempotency_key=idempotency_key(
                candidate.original_text, candidate.source, candidate.received_at
            ),
        )

    def materialize(
        self,
        candidate: ExtractedCandidate,
        category_id: str,
        *,
        reminder_intervals: Iterable[ReminderInterval] | None = None,
    ) -> Task:
        """Persist candidate as a Task (or return the one this share event already produced)."""
        task, _ = self.materialize_or_reuse(
            candidate, category_id, reminder_intervals=reminder_intervals
        )
        return task

    def materialize_or_reuse(
        self,
        candidate: ExtractedCandidate,
        category_id: str,
        *,
        reminder_intervals: Iterable[ReminderInterval] | None = None,
    ) -> tuple[Task, bool]:
        """
        Persist candidate as a Task.

        Returns (task, created). created is False when the same share event was
        materialized within the dedup window and the stored task is returned instead.
        Raises TaskStoreError when the store fails; the task is then not created.
        """
        task = self.build_task(candidate, category_id, reminder_intervals=reminder_intervals)
        key = task.idempotency_key or ""
        keys = nearby_keys(
            candidate.original_text, candidate.source, candidate.received_at, self._window
        )

        with self._lock_for(candidate.original_text, candidate.source):
            for i, minute_key in enumerate(keys):
                existing = self._store.find_by_idempotency_key(minute_key)
                if existing is None:
                    continue
                if self._clock() - existing.created_at <= self._window:
                    logger.info("Duplicate share event; reusing task id=%s", existing.id)
                    return existing, False
                if i == 0:
                    # Outside the window: release the key so the new task can take it.
                    self._store.release_idempotency_key(existing.id)
                    logger.debug("Released stale idempotency key from task id=%s", existing.id)

            try:
                task_id = self._store.insert(task)
            except DuplicateTaskError:
                winner = self._store.find_by_idempotency_key(key)
                if winner is None:
                    raise TaskStoreError(f"duplicate key {key} but no task holds it") from None
                logger.info("Concurrent materialization won by task id=%s", winner.id)
                return winner, False

        task.id = task_id
        logger.info(
            "Materialized task id=%s title=%r due=%s reminder=%s",
            task.id,
            task.title,
            task.due_datetime or task.due_date,
            task.has_reminder,
        )
        return task, True
