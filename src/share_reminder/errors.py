# src/share_reminder/errors.py

"""
Exception hierarchy.

Extraction never raises. Everything else surfaces one of these so callers can
tell a persistence problem from a scheduling problem from a malformed share.
"""

from __future__ import annotations


class ShareReminderError(Exception):
    """Base class for all package errors."""


class InvalidSharePayload(ShareReminderError, ValueError):
    """Inbound share payload is missing required fields (e.g. empty text)."""


class TaskStoreError(ShareReminderError):
    """Store unavailable or write rejected; the task is not considered created/updated."""


class DuplicateTaskError(TaskStoreError):
    """Insert rejected because a task with the same idempotency key already exists."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(f"task with idempotency_key={idempotency_key} already exists")
        self.idempotency_key = idempotency_key


class SchedulingError(ShareReminderError):
    """Deferred-execution subsystem rejected a schedule request."""


class NotificationError(ShareReminderError):
    """Notification could not be delivered (transient from the worker's point of view)."""
