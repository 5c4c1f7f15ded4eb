# src/share_reminder/notify/policy.py

"""
User notification preferences, checked when a reminder fires.

Quiet hours are a daily [start, end) window in local wall-clock time; a start later
than the end wraps over midnight (22:00-07:00). Reminders that fire while
notifications are off or inside quiet hours are dropped, not postponed.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def parse_hhmm(raw: str | None) -> dt.time | None:
    """'22:30' -> time(22, 30). Blank or malformed values give None."""
    if raw is None or not raw.strip():
        return None
    try:
        hh, mm = raw.strip().split(":", 1)
        return dt.time(hour=int(hh), minute=int(mm))
    except ValueError:
        logger.warning("Ignoring malformed quiet-hours value %r (expected HH:MM)", raw)
        return None


@dataclass(frozen=True, slots=True)
class NotificationPolicy:
    enabled: bool = True
    quiet_start: dt.time | None = None
    quiet_end: dt.time | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> NotificationPolicy:
        return cls(
            enabled=bool(getattr(settings, "notifications_enabled", True)),
            quiet_start=parse_hhmm(getattr(settings, "quiet_hours_start", None)),
            quiet_end=parse_hhmm(getattr(settings, "quiet_hours_end", None)),
        )

    def in_quiet_hours(self, now: dt.datetime) -> bool:
        start, end = self.quiet_start, self.quiet_end
        if start is None or end is None or start == end:
            return False
        current = now.time().replace(second=0, microsecond=0)
        if start < end:
            return start <= current < end
        # Wraps over midnight.
        return current >= start or current < end

    def allows(self, now: dt.datetime) -> bool:
        return self.enabled and not self.in_quiet_hours(now)
