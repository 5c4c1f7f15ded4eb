# src/share_reminder/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the store / deferred-execution host / notification channel swappable
and makes testing easier.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from ..tasks.task_models import Task

JobPayload = dict[str, str]
# Flat key/value map handed to the delivery worker: {"task_id": "...", "description": "...", ...}.


class TaskRepo(Protocol):
    """
    Persistent task store.

    Must guarantee atomic point reads and writes per task id.
    Failures surface as TaskStoreError.
    """

    def insert(self, task: Task) -> int: ...
    def get_by_id(self, task_id: int) -> Task | None: ...
    def update(self, task: Task) -> None: ...
    def delete(self, task_id: int) -> bool: ...
    def find_by_idempotency_key(self, key: str) -> Task | None: ...
    def release_idempotency_key(self, task_id: int) -> bool: ...


class JobScheduler(Protocol):
    """
    Deferred-execution host: runs a job at (or after) trigger_at, at least once.

    schedule_at() with an existing key replaces that job.
    cancel() is best-effort and returns False when there was nothing to cancel
    (e.g. the job already fired).
    """

    def schedule_at(self, key: str, trigger_at: datetime, payload: Mapping[str, str]) -> None: ...
    def cancel(self, key: str) -> bool: ...


class Notifier(Protocol):
    """Outbound notification channel (console, webhook, ...)."""

    def deliver(
        self, task_id: int, title: str, description: str, *, body: str | None = None
    ) -> None: ...


class DeliveryWorker(Protocol):
    def run(self, payload: Mapping[str, Any]) -> Any: ...
