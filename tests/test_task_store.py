# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest

from share_reminder.errors import DuplicateTaskError, TaskStoreError
from share_reminder.extraction.models import TaskPriority, TaskSource
from share_reminder.tasks.task_models import ReminderInterval
from share_reminder.tasks.task_store import TaskStore

from .fakes import make_task


def test_task_insert_get_update_delete(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    task = make_task(
        0,
        title="pick up dry cleaning",
        description="before they close",
        due_datetime=datetime(2026, 3, 11, 17, 0),
        intervals={ReminderInterval.ONE_DAY, ReminderInterval.ONE_HOUR},
    )
    task.idempotency_key = "k1"
    task_id = store.insert(task)
    assert task_id > 0

    got = store.get_by_id(task_id)
    assert got is not None
    assert got.id == task_id
    assert got.title == "pick up dry cleaning"
    assert got.description == "before they close"
    assert got.due_date == date(2026, 3, 11)
    assert got.due_datetime == datetime(2026, 3, 11, 17, 0)
    assert got.reminder_intervals == {ReminderInterval.ONE_DAY, ReminderInterval.ONE_HOUR}
    assert got.has_reminder is True
    assert got.is_completed is False
    assert got.priority is TaskPriority.MEDIUM
    assert got.source is TaskSource.CHAT
    assert got.idempotency_key == "k1"

    store.update(replace(got, reminder_intervals=frozenset(), has_reminder=False))
    got2 = store.get_by_id(task_id)
    assert got2 is not None
    assert got2.reminder_intervals == frozenset()
    assert got2.has_reminder is False
    assert got2.created_at == pytest.approx(got.created_at)

    assert store.delete(task_id) is True
    assert store.get_by_id(task_id) is None
    assert store.delete(task_id) is False


def test_set_completed_and_list_tasks(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    later = store.insert(make_task(0, title="later", due_date=date(2026, 5, 1)))
    sooner = store.insert(make_task(0, title="sooner", due_date=date(2026, 4, 1)))
    undated = store.insert(make_task(0, title="undated"))

    assert [t.id for t in store.list_tasks()] == [sooner, later, undated]

    assert store.set_completed(sooner) is True
    done = store.get_by_id(sooner)
    assert done is not None and done.is_completed and done.completed_at is not None

    assert [t.id for t in store.list_tasks()] == [later, undated]
    assert len(store.list_tasks(include_completed=True)) == 3
    assert store.count_tasks() == 3

    assert store.set_completed(999) is False


def test_idempotency_key_is_unique(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    first = make_task(0)
    first.idempotency_key = "same"
    task_id = store.insert(first)

    second = make_task(0, title="other")
    second.idempotency_key = "same"
    with pytest.raises(DuplicateTaskError) as ei:
        store.insert(second)
    assert ei.value.idempotency_key == "same"
    assert isinstance(ei.value, TaskStoreError)

    found = store.find_by_idempotency_key("same")
    assert found is not None and found.id == task_id
    assert store.find_by_idempotency_key("missing") is None

    # Tasks without a key never collide.
    store.insert(make_task(0))
    store.insert(make_task(0))
    assert store.count_tasks() == 3


def test_insert_requires_title(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    with pytest.raises(ValueError):
        store.insert(make_task(0, title="   "))


def test_schema_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            created_at REAL NOT NULL,
            updated_at REAL NOT NULL
        )
        """
    )
    conn.execute("INSERT INTO tasks(title, created_at, updated_at) VALUES ('old task', 1.0, 1.0)")
    conn.commit()
    conn.close()

    store = TaskStore(db)
    old = store.get_by_id(1)
    assert old is not None
    assert old.title == "old task"
    assert old.category_id == "general"
    assert old.source is TaskSource.MANUAL
    assert old.reminder_intervals == frozenset()
    assert old.idempotency_key is None


def test_corrupt_row_values_are_tolerated(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = TaskStore(db)
    task_id = store.insert(make_task(0))

    conn = sqlite3.connect(db)
    conn.execute(
        "UPDATE tasks SET reminder_intervals = 'not json', priority = 'weird', due_date = 'x' WHERE id = ?",
        (task_id,),
    )
    conn.commit()
    conn.close()

    got = store.get_by_id(task_id)
    assert got is not None
    assert got.reminder_intervals == frozenset()
    assert got.priority is TaskPriority.MEDIUM
    assert got.due_date is None
