# src/share_reminder/extraction/models.py

from __future__ import annotations

import dataclasses
import datetime as dt
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from . import rules


class TaskSource(StrEnum):
    """How a task entered the system."""

    CHAT = "chat"
    MANUAL = "manual"
    VOICE = "voice"
    CALENDAR = "calendar"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskSource:
        if not raw:
            return cls.MANUAL
        try:
            return cls(raw)
        except ValueError:
            return cls.MANUAL


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True, slots=True, eq=False)
class ExtractedCandidate:
    """
    A parsed, confidence-scored interpretation of one shared message.

    Identity is (original_text, title): two extractions of the same text that resolve
    to the same title are the same candidate. received_at is carried only so the
    materializer can derive an idempotency key; it does not take part in equality.
    """

    original_text: str
    title: str
    confidence: float
    source: TaskSource
    received_at: dt.datetime
    description: str | None = None
    date: dt.date | None = None
    time: dt.time | None = None
    suggested_category: str | None = None
    conversation_context: str | None = None
    sender_info: str | None = None
    keywords: tuple[str, ...] = field(default_factory=tuple)
    inferred_priority: TaskPriority = TaskPriority.MEDIUM

    # ---- derived flags (computed on read, never stored) ----

    @property
    def has_action_verb(self) -> bool:
        return rules.has_action_verb(self.title)

    @property
    def has_time_reference(self) -> bool:
        return self.date is not None or self.time is not None

    @property
    def has_request_keywords(self) -> bool:
        return rules.has_request_keywords(self.original_text)

    @property
    def word_count(self) -> int:
        return rules.word_count(self.title)

    @property
    def is_ambiguous(self) -> bool:
        return self.confidence < rules.AMBIGUITY_THRESHOLD or self.word_count < 2

    @property
    def lacks_context(self) -> bool:
        return self.description is None and not self.keywords

    def with_changes(self, **changes: Any) -> ExtractedCandidate:
        """Copy with updated fields (used by the confirmation step to apply user edits)."""
        return dataclasses.replace(self, **changes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtractedCandidate):
            return NotImplemented
        return self.original_text == other.original_text and self.title == other.title

    def __hash__(self) -> int:
        return hash((self.original_text, self.title))

    def __repr__(self) -> str:
        return (
            f"ExtractedCandidate(title={self.title!r}, confidence={self.confidence}, "
            f"date={self.date}, time={self.time})"
        )
