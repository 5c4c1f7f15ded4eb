# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from share_reminder.logging_setup import _ConsoleNoiseFilter, setup_logging


def _ours(h: logging.Handler) -> bool:
    return isinstance(h, logging.FileHandler) or any(
        isinstance(f, _ConsoleNoiseFilter) for f in h.filters
    )


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    saved_level = root.level
    httpcore_level = logging.getLogger("httpcore").level
    yield
    for h in [h for h in root.handlers if _ours(h)]:
        root.removeHandler(h)
        h.close()
    root.setLevel(saved_level)
    logging.getLogger("httpcore").setLevel(httpcore_level)
    logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("share_reminder.core.share_flow", logging.INFO, True),
        ("share_reminder.tasks.delivery_worker", logging.INFO, True),
        ("share_reminder.tasks.job_runner", logging.INFO, False),
        ("share_reminder.tasks.job_runner", logging.WARNING, True),
        ("share_reminder.extraction.engine", logging.DEBUG, False),
        ("httpx", logging.INFO, False),
        ("httpx", logging.WARNING, True),
        ("share_reminder_other", logging.INFO, False),
        ("py.warnings", logging.WARNING, False),
        ("sqlite3", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_delivery_log_only_gets_the_delivery_path(tmp_path: Path, restore_root_logging) -> None:
    log_dir = setup_logging(log_dir=tmp_path / "logs", console_level=logging.CRITICAL)

    logging.getLogger("share_reminder.tasks.delivery_worker").info("Reminder delivered task_id=1")
    logging.getLogger("share_reminder.core.share_flow").info("Shared message holds 2 items")
    logging.getLogger("share_reminder.tasks.job_runner").debug("poll")
    for h in logging.getLogger().handlers:
        h.flush()

    main_log = (log_dir / "share_reminder.log").read_text(encoding="utf-8")
    deliveries = (log_dir / "deliveries.log").read_text(encoding="utf-8")

    assert "Reminder delivered task_id=1" in main_log
    assert "Shared message holds 2 items" in main_log
    assert "poll" in main_log
    assert "Reminder delivered task_id=1" in deliveries
    assert "Shared message holds" not in deliveries
    assert "poll" not in deliveries
    assert logging.getLogger("httpcore").level == logging.INFO
