# src/share_reminder/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores / notifier / lifecycle services).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Notifier
from ..core.state import AppState
from ..notify.console import ConsoleNotifier
from ..notify.policy import NotificationPolicy
from ..notify.webhook import WebhookNotifier
from ..tasks.delivery_worker import ReminderDeliveryWorker
from ..tasks.job_store import JobStore
from ..tasks.materializer import TaskMaterializer
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.jobs_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_notifier(settings) -> Notifier:
    url = getattr(settings, "notify_webhook_url", None)
    if url:
        logger.info("Reminders go to webhook %s", url)
        return WebhookNotifier(url, timeout=float(getattr(settings, "notify_timeout_seconds", 10.0)))
    return ConsoleNotifier()


def create_initial_state(*, settings=None, notifier: Notifier | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    job_store = JobStore(settings.jobs_db_path)
    if notifier is None:
        notifier = build_notifier(settings)

    return AppState(
        settings=settings,
        task_store=task_store,
        job_store=job_store,
        notifier=notifier,
        materializer=TaskMaterializer(
            task_store, dedup_window_seconds=settings.dedup_window_seconds
        ),
        scheduler=ReminderScheduler(
            job_store, default_reminder_hour=settings.default_reminder_hour
        ),
        worker=ReminderDeliveryWorker(
            task_store, notifier, policy=NotificationPolicy.from_settings(settings)
        ),
    )
