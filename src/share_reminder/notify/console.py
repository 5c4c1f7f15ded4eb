# src/share_reminder/notify/console.py

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import datetime

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Prints reminders to the terminal (the console connector's output channel)."""

    def __init__(self, write: Callable[[str], None] | None = None) -> None:
        self._write = write

    def deliver(
        self, task_id: int, title: str, description: str, *, body: str | None = None
    ) -> None:
        line = f"[{_ts_local()}] [REMINDER #{task_id}] {title}"
        if description and description != title:
            line += f" - {description}"
        if body:
            line += f" | {body}"
        if self._write is not None:
            self._write(line)
        else:
            print(line, file=sys.stdout, flush=True)
        logger.info("Reminder shown task_id=%s", task_id)
