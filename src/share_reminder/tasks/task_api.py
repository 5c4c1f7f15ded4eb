# src/share_reminder/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from ..core.state import AppState
from .task_models import ReminderInterval, ScheduledJob, Task

logger = logging.getLogger(__name__)


def get_task(state: AppState, task_id: int) -> Task | None:
    return state.task_store.get_by_id(int(task_id))


def list_open_tasks(state: AppState, *, limit: int = 50) -> list[Task]:
    return state.task_store.list_tasks(include_completed=False, limit=limit)


def complete_task(state: AppState, task_id: int) -> bool:
    """
    Mark a task completed and cancel its reminders.

    Cancellation is best-effort: a reminder already in flight is suppressed by the
    delivery worker, which sees is_completed at fire time.
    """
    if not state.task_store.set_completed(task_id, True):
        return False
    state.scheduler.cancel_all(task_id)
    logger.info("Task %s completed", task_id)
    return True


def delete_task(state: AppState, task_id: int) -> bool:
    if not state.task_store.delete(task_id):
        return False
    state.scheduler.cancel_all(task_id)
    logger.info("Task %s deleted", task_id)
    return True


def update_reminders(
    state: AppState, task_id: int, intervals: Iterable[ReminderInterval]
) -> tuple[Task, set[ScheduledJob]] | None:
    """
    Replace the reminder intervals of a task and reschedule its jobs.

    An empty interval set turns reminders off. Returns None if the task does not exist.
    """
    task = state.task_store.get_by_id(task_id)
    if task is None:
        return None

    new_intervals = frozenset(intervals)
    has_reminder = bool(new_intervals) and task.reminder_anchor() is not None
    updated = replace(task, reminder_intervals=new_intervals, has_reminder=has_reminder)
    state.task_store.update(updated)

    jobs = state.scheduler.reschedule(updated)
    logger.info(
        "Task %s reminders -> %s (%d job(s))",
        task_id,
        ", ".join(sorted(i.value for i in new_intervals)) or "none",
        len(jobs),
    )
    return updated, jobs


def snooze_task(state: AppState, task_id: int, minutes: int | None = None) -> ScheduledJob | None:
    """Remind again in `minutes` (settings.snooze_minutes by default). None if task is missing/done."""
    task = state.task_store.get_by_id(task_id)
    if task is None or task.is_completed:
        return None
    if minutes is None:
        minutes = int(getattr(state.settings, "snooze_minutes", 10))
    return state.scheduler.schedule_snooze(task, minutes=minutes)
