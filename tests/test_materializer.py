# tests/test_materializer.py

from __future__ import annotations

import threading
from datetime import date, datetime
from pathlib import Path

import pytest

from share_reminder.errors import TaskStoreError
from share_reminder.extraction.engine import extract
from share_reminder.extraction.models import TaskSource
from share_reminder.share.envelope import SharedContentEnvelope
from share_reminder.tasks.materializer import TaskMaterializer, idempotency_key, nearby_keys
from share_reminder.tasks.task_models import ReminderInterval
from share_reminder.tasks.task_store import TaskStore

from .fakes import FakeTaskRepo

NOW = datetime(2026, 3, 10, 12, 0, 5)


class FakeClock:
    def __init__(self, t: float = 1_000_000.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


def _candidate(text: str, received_at: datetime = NOW):
    return extract(SharedContentEnvelope(text=text, received_at=received_at))


def test_date_and_time_combine_into_due_datetime() -> None:
    mat = TaskMaterializer(FakeTaskRepo())
    task = mat.materialize(_candidate("remember to pick up dry cleaning tomorrow at 5pm"), "household")

    assert task.id > 0
    assert task.due_date == date(2026, 3, 11)
    assert task.due_datetime == datetime(2026, 3, 11, 17, 0)
    assert task.has_reminder is True
    assert task.reminder_intervals == {ReminderInterval.ONE_DAY}
    assert task.category_id == "household"
    assert task.is_completed is False


def test_date_only_leaves_due_datetime_unset() -> None:
    task = TaskMaterializer(FakeTaskRepo()).materialize(_candidate("buy milk tomorrow"), "general")

    assert task.due_date == date(2026, 3, 11)
    assert task.due_datetime is None
    assert task.has_reminder is True


def test_time_only_or_nothing_means_no_reminder() -> None:
    mat = TaskMaterializer(FakeTaskRepo())
    for text in ("buy milk at 5pm", "buy milk", "ok"):
        task = mat.materialize(_candidate(text), "general")
        assert task.due_date is None
        assert task.has_reminder is False
        assert task.reminder_intervals == frozenset()


def test_has_reminder_follows_due_date_for_every_task() -> None:
    mat = TaskMaterializer(FakeTaskRepo())
    texts = [
        "call mom tonight",
        "pay rent by 3/31",
        "lorem ipsum",
        "meeting at noon",
        "water the plants next friday",
    ]
    for text in texts:
        task = mat.materialize(_candidate(text), "general")
        assert task.has_reminder == (task.due_date is not None)


def test_caller_can_override_intervals() -> None:
    task = TaskMaterializer(FakeTaskRepo()).materialize(
        _candidate("buy milk tomorrow"),
        "general",
        reminder_intervals=[ReminderInterval.ONE_HOUR, ReminderInterval.AT_TIME],
    )
    assert task.reminder_intervals == {ReminderInterval.ONE_HOUR, ReminderInterval.AT_TIME}


def test_idempotency_key_uses_text_source_and_minute() -> None:
    base = idempotency_key("buy milk", TaskSource.CHAT, NOW)

    assert base == idempotency_key("buy milk", TaskSource.CHAT, NOW.replace(second=59))
    assert base != idempotency_key("buy milk", TaskSource.CHAT, NOW.replace(minute=1))
    assert base != idempotency_key("buy milk", TaskSource.MANUAL, NOW)
    assert base != idempotency_key("buy milk!", TaskSource.CHAT, NOW)


def test_replayed_share_within_window_returns_existing_task() -> None:
    repo = FakeTaskRepo()
    clock = FakeClock()
    mat = TaskMaterializer(repo, dedup_window_seconds=300, clock=clock)

    first, created = mat.materialize_or_reuse(_candidate("buy milk tomorrow"), "general")
    assert created is True

    clock.t += 120
    # Host re-delivers the same share a few seconds later within the same minute.
    again, created_again = mat.materialize_or_reuse(
        _candidate("buy milk tomorrow", NOW.replace(second=40)), "general"
    )

    assert created_again is False
    assert again.id == first.id
    assert len(repo.tasks) == 1


def test_replay_after_window_creates_new_task() -> None:
    repo = FakeTaskRepo()
    clock = FakeClock()
    mat = TaskMaterializer(repo, dedup_window_seconds=300, clock=clock)

    first = mat.materialize(_candidate("buy milk tomorrow"), "general")
    clock.t += 301
    second, created = mat.materialize_or_reuse(_candidate("buy milk tomorrow"), "general")

    assert created is True
    assert second.id != first.id
    assert len(repo.tasks) == 2
    # The old task gave its key up.
    assert repo.tasks[first.id].idempotency_key is None
    assert repo.tasks[second.id].idempotency_key == second.idempotency_key


def test_insert_race_returns_the_winner() -> None:
    class RacingRepo(FakeTaskRepo):
        """First lookup misses, as if another process inserted right after it."""

        def __init__(self) -> None:
            super().__init__()
            self.lookups = 0

        def find_by_idempotency_key(self, key: str):
            self.lookups += 1
            if self.lookups == 1:
                rival = TaskMaterializer(FakeTaskRepo()).build_task(
                    _candidate("buy milk tomorrow"), "general"
                )
                self.insert(rival)
                return None
            return super().find_by_idempotency_key(key)

    repo = RacingRepo()
    task, created = TaskMaterializer(repo).materialize_or_reuse(
        _candidate("buy milk tomorrow"), "general"
    )

    assert created is False
    assert len(repo.tasks) == 1
    assert task.id == next(iter(repo.tasks))


def test_store_errors_propagate() -> None:
    class BrokenRepo(FakeTaskRepo):
        def insert(self, task):
            raise TaskStoreError("disk full")

    with pytest.raises(TaskStoreError):
        TaskMaterializer(BrokenRepo()).materialize(_candidate("buy milk"), "general")


def test_concurrent_replays_create_one_task(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    mat = TaskMaterializer(store)
    candidate = _candidate("please buy milk tomorrow")

    results: list[int] = []
    errors: list[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        try:
            task = mat.materialize(candidate, "general")
        except BaseException as exc:  # pragma: no cover
            with lock:
                errors.append(exc)
            return
        with lock:
            results.append(task.id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(set(results)) == 1
    assert store.count_tasks() == 1


def test_separate_materializers_share_the_unique_index(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    a = TaskMaterializer(TaskStore(db))
    b = TaskMaterializer(TaskStore(db))
    candidate = _candidate("buy milk tomorrow")

    first = a.materialize(candidate, "general")
    second, created = b.materialize_or_reuse(candidate, "general")

    assert created is False
    assert second.id == first.id


def test_replay_across_a_minute_boundary_is_deduplicated(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    clock = FakeClock()
    mat = TaskMaterializer(store, dedup_window_seconds=300, clock=clock)
    text = "buy milk tomorrow"

    first, created = mat.materialize_or_reuse(
        _candidate(text, datetime(2026, 3, 10, 12, 0, 59)), "general"
    )
    clock.t += 2
    again, created_again = mat.materialize_or_reuse(
        _candidate(text, datetime(2026, 3, 10, 12, 1, 1)), "general"
    )

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert store.count_tasks() == 1


def test_nearby_keys_span_the_window() -> None:
    at = datetime(2026, 3, 10, 12, 1, 1)
    keys = nearby_keys("buy milk", TaskSource.CHAT, at, 300)

    assert keys[0] == idempotency_key("buy milk", TaskSource.CHAT, at)
    assert len(keys) == 11
    assert idempotency_key("buy milk", TaskSource.CHAT, datetime(2026, 3, 10, 12, 0, 59)) == keys[1]
    assert nearby_keys("buy milk", TaskSource.CHAT, at, 0) == keys[:1]


def test_stale_key_release_keeps_a_concurrent_completion(tmp_path: Path) -> None:
    class CompletingStore(TaskStore):
        """Another process completes the old task right after this one reads it."""

        def find_by_idempotency_key(self, key: str):
            found = super().find_by_idempotency_key(key)
            if found is not None:
                self.set_completed(found.id)
            return found

    store = CompletingStore(tmp_path / "tasks.sqlite3")
    clock = FakeClock()
    mat = TaskMaterializer(store, dedup_window_seconds=300, clock=clock)

    first = mat.materialize(_candidate("buy milk tomorrow"), "general")
    clock.t += 301
    second, created = mat.materialize_or_reuse(_candidate("buy milk tomorrow"), "general")

    old = store.get_by_id(first.id)
    assert created is True
    assert second.id != first.id
    assert old is not None
    assert old.is_completed is True
    assert old.idempotency_key is None
