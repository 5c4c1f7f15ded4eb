# src/share_reminder/core/share_flow.py

"""
Share flow: envelope -> candidate -> Task -> reminder jobs.

This is the only place where the pure extraction engine meets the stores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..extraction.engine import extract, extract_many
from ..extraction.models import ExtractedCandidate
from ..share.envelope import SharedContentEnvelope
from ..tasks.task_models import ScheduledJob, Task
from .state import AppState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ShareOutcome:
    candidate: ExtractedCandidate
    task: Task | None = None
    jobs: set[ScheduledJob] = field(default_factory=set)
    created: bool = False

    @property
    def skipped(self) -> bool:
        return self.task is None


def _resolve_category(state: AppState, candidate: ExtractedCandidate, category_id: str | None) -> str:
    if category_id:
        return category_id
    if candidate.suggested_category:
        return candidate.suggested_category.lower()
    return str(getattr(state.settings, "default_category_id", "general"))


def _materialize(
    state: AppState, candidate: ExtractedCandidate, category_id: str | None
) -> ShareOutcome:
    min_conf = float(getattr(state.settings, "min_confidence", 0.0))
    if candidate.confidence < min_conf:
        logger.info(
            "Share skipped: confidence %.2f below %.2f (title=%r)",
            candidate.confidence,
            min_conf,
            candidate.title,
        )
        return ShareOutcome(candidate=candidate)

    category = _resolve_category(state, candidate, category_id)
    task, created = state.materializer.materialize_or_reuse(candidate, category)
    if not created:
        return ShareOutcome(candidate=candidate, task=task, created=False)

    jobs = state.scheduler.schedule(task) if task.has_reminder else set()
    return ShareOutcome(candidate=candidate, task=task, jobs=jobs, created=True)


def process_share(
    state: AppState,
    envelope: SharedContentEnvelope,
    *,
    category_id: str | None = None,
    now: datetime | None = None,
) -> ShareOutcome:
    """
    Run one shared message through the whole lifecycle.

    Candidates below settings.min_confidence are returned without a task.
    A replayed share event reuses the existing task; its jobs are not touched again.
    TaskStoreError / SchedulingError propagate to the caller.
    """
    return _materialize(state, extract(envelope, now=now), category_id)


def process_share_all(
    state: AppState,
    envelope: SharedContentEnvelope,
    *,
    category_id: str | None = None,
    now: datetime | None = None,
) -> list[ShareOutcome]:
    """
    Like process_share, but a list-like message (one item per line, bullet or ';')
    yields one outcome per distinct item, highest confidence first.

    Each item is keyed by its own text, so replaying the list reuses every task.
    A single-item message gives exactly what process_share gives.
    """
    candidates = extract_many(envelope, now=now)
    if len(candidates) > 1:
        logger.info("Shared message holds %d items", len(candidates))
    return [_materialize(state, c, category_id) for c in candidates]


def process_inbox(state: AppState, *, now: datetime | None = None) -> list[ShareOutcome]:
    """Drain the share inbox. One failing envelope does not block the others."""
    outcomes: list[ShareOutcome] = []
    for envelope in state.inbox.drain():
        try:
            outcomes.extend(process_share_all(state, envelope, now=now))
        except Exception:
            logger.exception("Failed to process shared message from app=%s", envelope.app_name)
    return outcomes
