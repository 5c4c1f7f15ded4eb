# src/share_reminder/tasks/delivery_worker.py

from __future__ import annotations

"""
Reminder delivery worker.

Runs once per fired job. The payload only says which task to look at; what gets
delivered (and whether anything is delivered at all) is decided from the task as
it is in the store right now:

    payload invalid          -> FAILURE (nothing sent)
    store read failed        -> RETRY
    task gone                -> SUCCESS (nothing sent)
    task completed           -> SUCCESS (nothing sent)
    muted or quiet hours     -> SUCCESS (nothing sent)
    otherwise                -> notify, SUCCESS (RETRY if the notifier fails)
"""

import datetime as dt
import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from ..core.ports import Notifier, TaskRepo
from ..errors import NotificationError, TaskStoreError
from ..notify.policy import NotificationPolicy

logger = logging.getLogger(__name__)

# Store failures that are worth another attempt later.
TRANSIENT_STORE_ERRORS: tuple[type[BaseException], ...] = (TaskStoreError, OSError, TimeoutError)


class WorkResult(StrEnum):
    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"


def _required(payload: Mapping[str, Any], key: str) -> str | None:
    raw = payload.get(key)
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


class ReminderDeliveryWorker:
    def __init__(
        self,
        store: TaskRepo,
        notifier: Notifier,
        *,
        policy: NotificationPolicy | None = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._policy = policy or NotificationPolicy()
        self._clock = clock

    def run(self, payload: Mapping[str, Any]) -> WorkResult:
        raw_id = _required(payload, "task_id")
        description = _required(payload, "description")
        if raw_id is None or description is None:
            logger.error(
                "Reminder payload missing task_id/description; dropping (keys=%s)",
                sorted(payload.keys()),
            )
            return WorkResult.FAILURE

        try:
            task_id = int(raw_id)
        except ValueError:
            logger.error("Reminder payload has non-integer task_id=%r; dropping", raw_id)
            return WorkResult.FAILURE

        try:
            task = self._store.get_by_id(task_id)
        except TRANSIENT_STORE_ERRORS as exc:
            logger.warning("Store read failed for task_id=%s: %s (will retry)", task_id, exc)
            return WorkResult.RETRY

        if task is None:
            logger.info("Reminder for deleted task_id=%s skipped", task_id)
            return WorkResult.SUCCESS

        if task.is_completed:
            logger.info("Reminder for completed task_id=%s skipped", task_id)
            return WorkResult.SUCCESS

        now = self._clock()
        if not self._policy.allows(now):
            logger.info(
                "Reminder for task_id=%s suppressed (notifications off or quiet hours)", task_id
            )
            return WorkResult.SUCCESS

        slot = _required(payload, "interval")
        body = task.reminder_body(slot, now.date())
        try:
            self._notifier.deliver(task.id, task.title, task.display_text(), body=body)
        except (NotificationError, OSError, TimeoutError) as exc:
            logger.warning("Notification failed for task_id=%s: %s (will retry)", task_id, exc)
            return WorkResult.RETRY

        logger.info("Reminder delivered task_id=%s slot=%s", task_id, slot or "-")
        return WorkResult.SUCCESS
