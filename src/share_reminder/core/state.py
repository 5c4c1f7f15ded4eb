# src/share_reminder/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..share.inbox import ShareInbox
from ..tasks.delivery_worker import ReminderDeliveryWorker
from ..tasks.job_store import JobStore
from ..tasks.materializer import TaskMaterializer
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .ports import Notifier


@dataclass
class AppState:
    """
    Shared runtime state (wired once in cli.bootstrap).

    Contains:
    - settings
    - stores (tasks, jobs)
    - lifecycle services (materializer, reminder scheduler, delivery worker)
    - the share inbox the connectors feed
    """

    settings: Any

    task_store: TaskStore
    job_store: JobStore
    notifier: Notifier

    materializer: TaskMaterializer
    scheduler: ReminderScheduler
    worker: ReminderDeliveryWorker

    inbox: ShareInbox = field(default_factory=ShareInbox)

    # Serializes command handling between the console and the runner thread.
    lock: threading.RLock = field(default_factory=threading.RLock)
