# src/share_reminder/tasks/task_models.py

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..extraction.models import TaskPriority, TaskSource

SNOOZE_SLOT = "snooze"


class ReminderInterval(StrEnum):
    """Fixed offsets before a task's due time. Carries no state of its own."""

    AT_TIME = "at_time"
    ONE_HOUR = "one_hour"
    SIX_HOURS = "six_hours"
    TWELVE_HOURS = "twelve_hours"
    ONE_DAY = "one_day"

    @property
    def offset(self) -> dt.timedelta:
        return _OFFSETS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY[self]

    @classmethod
    def from_db(cls, raw: str | None) -> ReminderInterval | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


_OFFSETS: dict[ReminderInterval, dt.timedelta] = {
    ReminderInterval.AT_TIME: dt.timedelta(0),
    ReminderInterval.ONE_HOUR: dt.timedelta(hours=1),
    ReminderInterval.SIX_HOURS: dt.timedelta(hours=6),
    ReminderInterval.TWELVE_HOURS: dt.timedelta(hours=12),
    ReminderInterval.ONE_DAY: dt.timedelta(days=1),
}

_DISPLAY: dict[ReminderInterval, str] = {
    ReminderInterval.AT_TIME: "at due time",
    ReminderInterval.ONE_HOUR: "1 hour before",
    ReminderInterval.SIX_HOURS: "6 hours before",
    ReminderInterval.TWELVE_HOURS: "12 hours before",
    ReminderInterval.ONE_DAY: "1 day before",
}


@dataclass(slots=True)
class Task:
    """
    Persisted task record.

    id == 0 means "not stored yet"; the store assigns the real id on insert.
    """

    id: int
    title: str
    category_id: str
    priority: TaskPriority
    source: TaskSource
    created_at: float
    updated_at: float

    description: str | None = None
    due_date: dt.date | None = None
    due_datetime: dt.datetime | None = None
    is_completed: bool = False
    has_reminder: bool = False
    reminder_intervals: frozenset[ReminderInterval] = field(default_factory=frozenset)
    completed_at: float | None = None
    idempotency_key: str | None = None

    def reminder_anchor(self, default_hour: int = 9) -> dt.datetime | None:
        """
        Instant that reminder offsets are measured from.

        A date-only task is anchored at default_hour on its due date.
        """
        if self.due_datetime is not None:
            return self.due_datetime
        if self.due_date is not None:
            return dt.datetime.combine(self.due_date, dt.time(hour=default_hour))
        return None

    def display_text(self) -> str:
        return (self.description or "").strip() or self.title

    def due_display(self, today: dt.date) -> str | None:
        """'Today' / 'Tomorrow' / 'M/D/YYYY', plus ' H:MM AM/PM' when a due time is set."""
        if self.due_date is None:
            return None
        if self.due_date == today:
            text = "Today"
        elif self.due_date == today + dt.timedelta(days=1):
            text = "Tomorrow"
        else:
            text = f"{self.due_date.month}/{self.due_date.day}/{self.due_date.year}"
        if self.due_datetime is not None:
            hour = self.due_datetime.hour % 12 or 12
            period = "PM" if self.due_datetime.hour >= 12 else "AM"
            text += f" {hour}:{self.due_datetime.minute:02d} {period}"
        return text

    def reminder_body(self, slot: str | None, today: dt.date) -> str | None:
        """
        Notification body for the reminder fired under slot, e.g. "Due tomorrow (1 day before)".

        None when the task has no due date. Snoozed or unknown slots get no suffix.
        """
        due = self.due_display(today)
        if due is None:
            return None
        if self.due_datetime is None and due in ("Today", "Tomorrow"):
            due = due.lower()
        interval = ReminderInterval.from_db(slot)
        if interval is None:
            return f"Due {due}"
        return f"Due {due} ({interval.display_name})"


@dataclass(frozen=True, slots=True)
class JobKey:
    """Unique key of a deferred reminder job: one active job per (task, slot)."""

    task_id: int
    slot: str

    @classmethod
    def for_interval(cls, task_id: int, interval: ReminderInterval) -> JobKey:
        return cls(task_id=int(task_id), slot=interval.value)

    def as_str(self) -> str:
        return f"reminder:{self.task_id}:{self.slot}"

    @classmethod
    def parse(cls, raw: str) -> JobKey:
        prefix, task_id, slot = raw.split(":", 2)
        if prefix != "reminder":
            raise ValueError(f"not a reminder job key: {raw}")
        return cls(task_id=int(task_id), slot=slot)


@dataclass(frozen=True, slots=True)
class ScheduledJob:
    key: JobKey
    trigger_at: dt.datetime
    payload: dict[str, str] = field(default_factory=dict, compare=False)


class JobStatus(StrEnum):
    SCHEDULED = "scheduled"
    RUNNING = "running"
    FAILED = "failed"

    @classmethod
    def from_db(cls, raw: str | None) -> JobStatus:
        if not raw:
            return cls.SCHEDULED
        try:
            return cls(raw)
        except ValueError:
            return cls.SCHEDULED


@dataclass(frozen=True, slots=True)
class JobRecord:
    """Row of the job table as seen by the runner."""

    key: str
    task_id: int | None
    trigger_at: float
    payload: dict[str, Any]
    status: JobStatus
    attempts: int
    last_error: str | None
    updated_at: float
