# tests/test_job_runner.py

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from share_reminder.tasks.delivery_worker import ReminderDeliveryWorker, WorkResult
from share_reminder.tasks.job_runner import (
    backoff_delay,
    run_due_jobs_once,
    run_job_runner,
    start_job_runner_in_background,
)
from share_reminder.tasks.job_store import JobStore
from share_reminder.tasks.task_models import JobStatus

from .fakes import FakeTaskRepo, RecordingNotifier, make_task


class ScriptedWorker:
    """Returns the given results in order, then repeats the last one."""

    def __init__(self, *results: WorkResult | Exception) -> None:
        self.results = list(results)
        self.payloads: list[dict] = []

    def run(self, payload):
        self.payloads.append(dict(payload))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def jobs(tmp_path: Path) -> JobStore:
    return JobStore(tmp_path / "jobs.sqlite3")


def _due(jobs: JobStore, key: str = "reminder:1:at_time", task_id: int = 1) -> None:
    jobs.schedule_at(
        key,
        datetime.now() - timedelta(seconds=5),
        {"task_id": str(task_id), "description": "pick up dry cleaning", "interval": "at_time"},
    )


def test_backoff_doubles_per_attempt() -> None:
    assert backoff_delay(60, 1) == 60
    assert backoff_delay(60, 2) == 120
    assert backoff_delay(60, 3) == 240
    assert backoff_delay(60, 0) == 60


def test_success_removes_the_job(jobs: JobStore) -> None:
    _due(jobs)
    worker = ScriptedWorker(WorkResult.SUCCESS)

    stats = run_due_jobs_once(jobs, worker)

    assert stats.delivered == 1
    assert stats.keys == ["reminder:1:at_time"]
    assert worker.payloads[0]["task_id"] == "1"
    assert jobs.count_jobs() == 0


def test_failure_parks_the_job(jobs: JobStore) -> None:
    _due(jobs)
    stats = run_due_jobs_once(jobs, ScriptedWorker(WorkResult.FAILURE))

    assert stats.failed == 1
    job = jobs.get("reminder:1:at_time")
    assert job is not None and job.status is JobStatus.FAILED
    # Failed jobs are never picked up again.
    assert run_due_jobs_once(jobs, ScriptedWorker(WorkResult.SUCCESS)).processed == 0


def test_retry_backs_off_then_gives_up(jobs: JobStore) -> None:
    _due(jobs)
    worker = ScriptedWorker(WorkResult.RETRY)

    before = time.time()
    stats = run_due_jobs_once(jobs, worker, retry_delay_seconds=30, max_attempts=2)
    assert stats.retried == 1
    job = jobs.get("reminder:1:at_time")
    assert job is not None
    assert job.status is JobStatus.SCHEDULED
    assert job.attempts == 1
    assert job.trigger_at >= before + 30

    # Not due yet.
    assert run_due_jobs_once(jobs, worker, max_attempts=2).processed == 0

    stats = run_due_jobs_once(jobs, worker, now_ts=time.time() + 31, max_attempts=2)
    assert stats.failed == 1
    job = jobs.get("reminder:1:at_time")
    assert job is not None and job.status is JobStatus.FAILED
    assert job.attempts == 2


def test_worker_exception_counts_as_retry(jobs: JobStore) -> None:
    _due(jobs)
    stats = run_due_jobs_once(jobs, ScriptedWorker(RuntimeError("boom")), max_attempts=5)

    assert stats.retried == 1
    job = jobs.get("reminder:1:at_time")
    assert job is not None and job.status is JobStatus.SCHEDULED


def test_batch_limit_is_respected(jobs: JobStore) -> None:
    for i in range(1, 6):
        _due(jobs, key=f"reminder:{i}:at_time", task_id=i)

    stats = run_due_jobs_once(jobs, ScriptedWorker(WorkResult.SUCCESS), batch_limit=2)

    assert stats.delivered == 2
    assert jobs.count_jobs() == 3


def test_end_to_end_with_real_worker(jobs: JobStore) -> None:
    repo = FakeTaskRepo([make_task(1, description="blue shirts"), make_task(2, completed=True)])
    notifier = RecordingNotifier()
    _due(jobs, key="reminder:1:at_time", task_id=1)
    _due(jobs, key="reminder:2:at_time", task_id=2)

    stats = run_due_jobs_once(jobs, ReminderDeliveryWorker(repo, notifier))

    assert stats.delivered == 2
    assert [d.task_id for d in notifier.delivered] == [1]
    assert notifier.delivered[0].description == "blue shirts"


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_runner_delivers_and_stops_on_event(jobs: JobStore) -> None:
    _due(jobs)
    notifier = RecordingNotifier()
    worker = ReminderDeliveryWorker(FakeTaskRepo([make_task(1)]), notifier)
    stop = asyncio.Event()

    runner = asyncio.create_task(
        run_job_runner(jobs, worker, interval_seconds=0.01, retry_delay_seconds=0.01, stop_event=stop)
    )

    await _wait_until(lambda: bool(notifier.delivered))
    stop.set()
    await asyncio.wait_for(runner, timeout=2.0)

    assert len(notifier.delivered) == 1
    assert jobs.count_jobs() == 0


@pytest.mark.asyncio
async def test_runner_can_be_cancelled(jobs: JobStore) -> None:
    runner = asyncio.create_task(
        run_job_runner(jobs, ScriptedWorker(WorkResult.SUCCESS), interval_seconds=0.01)
    )

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner


def test_background_runner_thread(jobs: JobStore) -> None:
    _due(jobs)
    notifier = RecordingNotifier()
    worker = ReminderDeliveryWorker(FakeTaskRepo([make_task(1)]), notifier)

    handle = start_job_runner_in_background(jobs, worker, interval_seconds=0.01)
    assert handle is not None
    try:
        deadline = time.monotonic() + 2.0
        while not notifier.delivered and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        handle.stop()
        handle.join(timeout=2.0)

    assert len(notifier.delivered) == 1
    assert not handle.thread.is_alive()
