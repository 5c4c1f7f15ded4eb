# src/share_reminder/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Turns a Task's reminder intervals into keyed jobs on the deferred-execution host:
- one job per (task_id, interval); scheduling an existing key replaces it
- trigger instants in the past are skipped, never fired retroactively
- cancellation is best-effort, the delivery worker re-checks the task at fire time
"""

import datetime as dt
import logging
from collections.abc import Callable

from ..core.ports import JobPayload, JobScheduler
from ..errors import SchedulingError
from .task_models import SNOOZE_SLOT, JobKey, ReminderInterval, ScheduledJob, Task

logger = logging.getLogger(__name__)


def build_payload(task: Task, slot: str) -> JobPayload:
    return {
        "task_id": str(task.id),
        "title": task.title,
        "description": task.display_text(),
        "interval": slot,
    }


class ReminderScheduler:
    def __init__(
        self,
        jobs: JobScheduler,
        *,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        default_reminder_hour: int = 9,
    ) -> None:
        self._jobs = jobs
        self._clock = clock
        self._default_hour = int(default_reminder_hour)

    def trigger_instants(
        self, task: Task, now: dt.datetime | None = None
    ) -> dict[ReminderInterval, dt.datetime]:
        """Future trigger instant per interval of task (past ones are left out)."""
        anchor = task.reminder_anchor(self._default_hour)
        if anchor is None:
            return {}
        now = now or self._clock()
        out: dict[ReminderInterval, dt.datetime] = {}
        for interval in sorted(task.reminder_intervals, key=lambda i: i.offset):
            trigger_at = anchor - interval.offset
            if trigger_at <= now:
                logger.debug(
                    "Skipping past reminder task_id=%s interval=%s trigger_at=%s",
                    task.id,
                    interval.value,
                    trigger_at,
                )
                continue
            out[interval] = trigger_at
        return out

    def _schedule_one(self, key: JobKey, trigger_at: dt.datetime, payload: JobPayload) -> None:
        key_s = key.as_str()
        # Cancel-then-create keeps a single active job per key.
        self._cancel_quietly(key_s)
        try:
            self._jobs.schedule_at(key_s, trigger_at, payload)
        except Exception as exc:
            logger.error("Scheduler rejected job key=%s trigger_at=%s: %s", key_s, trigger_at, exc)
            raise SchedulingError(f"cannot schedule {key_s}: {exc}") from exc

    def _cancel_quietly(self, key: str) -> bool:
        try:
            return bool(self._jobs.cancel(key))
        except Exception:
            logger.warning("cancel failed key=%s (ignored)", key, exc_info=True)
            return False

    def schedule(self, task: Task) -> set[ScheduledJob]:
        """
        Create (or replace) the reminder jobs of task and return them.

        Intervals no longer on the task get their jobs cancelled. A task with no
        anchor, no reminder, or already completed ends up with no jobs at all.
        Raises SchedulingError when the host rejects a job.
        """
        if task.id <= 0:
            raise SchedulingError("task must be stored before scheduling reminders")

        if not task.has_reminder or task.is_completed:
            self.cancel_all(task.id)
            return set()

        instants = self.trigger_instants(task)
        for interval in ReminderInterval:
            if interval not in instants:
                self._cancel_quietly(JobKey.for_interval(task.id, interval).as_str())

        scheduled: set[ScheduledJob] = set()
        for interval, trigger_at in instants.items():
            key = JobKey.for_interval(task.id, interval)
            payload = build_payload(task, interval.value)
            self._schedule_one(key, trigger_at, payload)
            scheduled.add(ScheduledJob(key=key, trigger_at=trigger_at, payload=payload))

        logger.info(
            "Scheduled %d reminder(s) for task_id=%s: %s",
            len(scheduled),
            task.id,
            ", ".join(sorted(j.key.slot for j in scheduled)) or "-",
        )
        return scheduled

    def reschedule(self, task: Task) -> set[ScheduledJob]:
        return self.schedule(task)

    def cancel_all(self, task_id: int) -> int:
        """
        Cancel every reminder key of task_id (snooze included).

        Every key is attempted; failures are logged only. Returns how many jobs were
        actually cancelled, 0 when none were pending.
        """
        slots = [i.value for i in ReminderInterval] + [SNOOZE_SLOT]
        cancelled = 0
        for slot in slots:
            if self._cancel_quietly(JobKey(task_id=int(task_id), slot=slot).as_str()):
                cancelled += 1
        logger.debug("cancel_all task_id=%s attempted=%d cancelled=%d", task_id, len(slots), cancelled)
        return cancelled

    def schedule_snooze(self, task: Task, minutes: int = 10) -> ScheduledJob:
        """One-off reminder `minutes` from now under the task's snooze key."""
        if task.id <= 0:
            raise SchedulingError("task must be stored before snoozing")
        trigger_at = self._clock() + dt.timedelta(minutes=max(1, int(minutes)))
        key = JobKey(task_id=task.id, slot=SNOOZE_SLOT)
        payload = build_payload(task, SNOOZE_SLOT)
        self._schedule_one(key, trigger_at, payload)
        logger.info("Snoozed task_id=%s until %s", task.id, trigger_at)
        return ScheduledJob(key=key, trigger_at=trigger_at, payload=payload)
