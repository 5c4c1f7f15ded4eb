# src/share_reminder/tasks/job_runner.py

from __future__ import annotations

"""
Job runner.

A small polling loop that:
- fetches due jobs from the job store,
- claims them (best-effort, so two runners never run the same job),
- hands the payload to the delivery worker,
- deletes the job on success, backs off on RETRY, parks it as failed on FAILURE.

The worker never raises into the loop; anything unexpected counts as RETRY.
"""

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Protocol

from ..core.ports import DeliveryWorker
from .delivery_worker import WorkResult
from .task_models import JobRecord

logger = logging.getLogger(__name__)


class RunnableJobStore(Protocol):
    def list_due(self, now_ts: float, limit: int = 32) -> list[JobRecord]: ...
    def try_claim(self, key: str) -> bool: ...
    def mark_done(self, key: str) -> None: ...
    def mark_failed(self, key: str, error: str) -> None: ...
    def retry_later(self, key: str, delay_s: float, error: str | None = None) -> None: ...


@dataclass(slots=True)
class RunStats:
    delivered: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0
    keys: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.delivered + self.retried + self.failed


def backoff_delay(retry_delay_seconds: float, attempts: int) -> float:
    """retry_delay * 2**(attempts-1): 1x after the first attempt, 2x after the second..."""
    return float(retry_delay_seconds) * (2 ** max(0, int(attempts) - 1))


def _run_worker(worker: DeliveryWorker, job: JobRecord) -> WorkResult:
    try:
        result = worker.run(job.payload)
    except Exception:
        logger.exception("Delivery worker crashed key=%s", job.key)
        return WorkResult.RETRY
    try:
        return WorkResult(result)
    except ValueError:
        logger.error("Delivery worker returned %r for key=%s; treating as retry", result, job.key)
        return WorkResult.RETRY


def run_due_jobs_once(
    job_store: RunnableJobStore,
    worker: DeliveryWorker,
    *,
    now_ts: float | None = None,
    retry_delay_seconds: float = 60.0,
    max_attempts: int = 5,
    batch_limit: int = 32,
) -> RunStats:
    """Process one batch of due jobs and return what happened to them."""
    stats = RunStats()
    now_ts = time.time() if now_ts is None else float(now_ts)
    max_attempts = max(1, int(max_attempts))

    try:
        jobs = job_store.list_due(now_ts, limit=int(batch_limit))
    except Exception:
        logger.exception("list_due failed")
        return stats

    for job in jobs:
        try:
            claimed = job_store.try_claim(job.key)
        except Exception:
            logger.exception("try_claim failed key=%s", job.key)
            continue
        if not claimed:
            stats.skipped += 1
            continue

        attempts = job.attempts + 1
        result = _run_worker(worker, job)
        stats.keys.append(job.key)

        try:
            if result is WorkResult.SUCCESS:
                job_store.mark_done(job.key)
                stats.delivered += 1
            elif result is WorkResult.FAILURE:
                job_store.mark_failed(job.key, "permanent failure")
                stats.failed += 1
                logger.error("Job %s failed permanently", job.key)
            elif attempts >= max_attempts:
                job_store.mark_failed(job.key, f"gave up after {attempts} attempts")
                stats.failed += 1
                logger.error("Job %s gave up after %d attempts", job.key, attempts)
            else:
                delay = backoff_delay(retry_delay_seconds, attempts)
                job_store.retry_later(job.key, delay, f"attempt {attempts} failed")
                stats.retried += 1
                logger.info("Job %s -> retry in %.0fs (attempt %d)", job.key, delay, attempts)
        except Exception:
            logger.exception("Failed to record result=%s for key=%s", result.value, job.key)

    return stats


async def run_job_runner(
        job_store: RunnableJobStore,
        worker: DeliveryWorker,
        *,
        interval_seconds: float = 15.0,
        retry_delay_seconds: float = 60.0,
        max_attempts: int = 5,
        batch_limit: int = 32,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Simple polling runner.

    Every interval_seconds runs one batch (run_due_jobs_once) in a worker thread so
    SQLite and notifier I/O do not block the loop.

    To stop the runner, cancel the coroutine/task or set stop_event.
    """
    sleep_s = max(0.01, float(interval_seconds))
    retry_s = max(0.0, float(retry_delay_seconds))

    while stop_event is None or not stop_event.is_set():
        stats = await asyncio.to_thread(
            run_due_jobs_once,
            job_store,
            worker,
            retry_delay_seconds=retry_s,
            max_attempts=max_attempts,
            batch_limit=batch_limit,
        )
        if stats.processed:
            logger.debug(
                "Runner batch delivered=%d retried=%d failed=%d",
                stats.delivered,
                stats.retried,
                stats.failed,
            )

        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)


@dataclass
class JobRunnerThread:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal job runner stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_job_runner_in_background(
    job_store: RunnableJobStore,
    worker: DeliveryWorker,
    *,
    interval_seconds: float = 15.0,
    retry_delay_seconds: float = 60.0,
    max_attempts: int = 5,
) -> JobRunnerThread | None:
    """
    Start the job runner in a background thread with its own event loop
    (the console REPL blocks the main thread on input()).
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_job_runner(
                    job_store,
                    worker,
                    interval_seconds=interval_seconds,
                    retry_delay_seconds=retry_delay_seconds,
                    max_attempts=max_attempts,
                    stop_event=stop_event,
                )
            )
        except Exception:
            logger.exception("Job runner crashed.")
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name="job-runner", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Job runner thread did not initialize properly.")
        return None

    logger.info("Job runner background thread started (interval=%ss).", interval_seconds)
    return JobRunnerThread(thread=t, loop=loop, stop_event=stop_event)
