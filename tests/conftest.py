# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from share_reminder.cli.bootstrap import create_initial_state
from share_reminder.core.state import AppState

from .fakes import RecordingNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="share-reminder-test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        jobs_db_path=tmp_path / "jobs.sqlite3",
        # Materializer
        dedup_window_seconds=300.0,
        default_category_id="general",
        min_confidence=0.0,
        # Reminders / runner
        default_reminder_hour=9,
        snooze_minutes=10,
        runner_interval_seconds=0.01,
        retry_delay_seconds=60.0,
        max_delivery_attempts=3,
        # Notifications
        notify_webhook_url=None,
        notify_timeout_seconds=1.0,
        notifications_enabled=True,
        quiet_hours_start=None,
        quiet_hours_end=None,
    )


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, notifier: RecordingNotifier) -> AppState:
    """
    AppState wired with a recording notifier.

    NOTE: We keep real SQLite stores here (TaskStore/JobStore) because
    their correctness is part of what we want to test.
    """
    return create_initial_state(settings=settings, notifier=notifier)
