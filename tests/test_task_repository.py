# tests/test_task_repository.py

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from app.db.base import Base
from app.db.session import init_models
from app.features.tasks.domain import (
    Priority,
    SortField,
    SortOrder,
    StatusFilter,
    StorageError,
    TASK_ID_MAX,
    TaskListQuery,
)
from app.features.tasks.repository import TaskRepository, next_timestamp


async def test_create_assigns_id_and_timestamps(make_task) -> None:
    first = await make_task(title="Buy gifts", priority="high", tags=["gifts"])
    second = await make_task(title="Wrap gifts")

    assert first.id != second.id
    assert first.title == "Buy gifts"
    assert first.priority == Priority.HIGH
    assert first.completed is False
    assert first.tags == ["gifts"]
    assert first.created_at == first.updated_at
    assert first.created_at.tzinfo is not None


async def test_get_by_id_round_trip(repo: TaskRepository, make_task) -> None:
    created = await make_task(title="Bake cookies", description="Gingerbread", dueDate="2026-12-20")

    fetched = await repo.get_by_id(created.id)

    assert fetched == created


async def test_unknown_id_signals_not_found(repo: TaskRepository) -> None:
    assert await repo.get_by_id(404) is None
    assert await repo.update(404, {"title": "x"}) is None
    assert await repo.toggle_completed(404) is None
    assert await repo.delete(404) is False


async def test_update_changes_fields_and_advances_updated_at(repo: TaskRepository, make_task) -> None:
    task = await make_task(title="Decorate tree")

    updated = await repo.update(task.id, {"title": "Decorate the tree", "priority": Priority.LOW})

    assert updated.title == "Decorate the tree"
    assert updated.priority == Priority.LOW
    assert updated.created_at == task.created_at
    assert updated.updated_at > task.updated_at


async def test_toggle_twice_restores_state(repo: TaskRepository, make_task) -> None:
    task = await make_task(title="Send cards")

    once = await repo.toggle_completed(task.id)
    twice = await repo.toggle_completed(task.id)

    assert once.completed is True
    assert twice.completed is False
    assert task.updated_at < once.updated_at < twice.updated_at


async def test_delete_is_permanent(repo: TaskRepository, make_task) -> None:
    task = await make_task(title="Return sweater")

    assert await repo.delete(task.id) is True
    assert await repo.get_by_id(task.id) is None
    assert await repo.delete(task.id) is False


async def test_status_filter(repo: TaskRepository, make_task) -> None:
    done = await make_task(title="Done", completed=True)
    open_task = await make_task(title="Open")

    completed = await repo.list(TaskListQuery(status=StatusFilter.COMPLETED))
    active = await repo.list(TaskListQuery(status=StatusFilter.ACTIVE))
    everything = await repo.list(TaskListQuery())

    assert [t.id for t in completed] == [done.id]
    assert [t.id for t in active] == [open_task.id]
    assert {t.id for t in everything} == {done.id, open_task.id}


async def test_priority_and_tag_filters(repo: TaskRepository, make_task) -> None:
    both = await make_task(title="A", priority="high", tags=["gifts", "family"])
    await make_task(title="B", priority="high", tags=["gifts"])
    low = await make_task(title="C", priority="low", tags=["family"])

    by_tags = await repo.list(TaskListQuery(tags=("gifts", "family")))
    by_priority = await repo.list(TaskListQuery(priorities=(Priority.LOW,)))

    assert [t.id for t in by_tags] == [both.id]
    assert [t.id for t in by_priority] == [low.id]


async def test_due_date_range_is_inclusive(repo: TaskRepository, make_task) -> None:
    early = await make_task(title="Early", dueDate="2026-12-20")
    late = await make_task(title="Late", dueDate="2026-12-24")
    await make_task(title="After", dueDate="2026-12-31")
    await make_task(title="Undated")

    tasks = await repo.list(TaskListQuery(due_from=date(2026, 12, 20), due_to=date(2026, 12, 24)))

    assert [t.id for t in tasks] == [early.id, late.id]


async def test_search_matches_title_and_description(repo: TaskRepository, make_task) -> None:
    by_title = await make_task(title="Buy GIFTS")
    by_description = await make_task(title="Shopping", description="wrap gifts tonight")
    await make_task(title="Bake cookies")

    tasks = await repo.list(TaskListQuery(search="gift", sort_by=SortField.CREATED_AT))

    assert [t.id for t in tasks] == [by_title.id, by_description.id]


async def test_search_treats_wildcards_literally(repo: TaskRepository, make_task) -> None:
    await make_task(title="Bake 1000 cookies")
    exact = await make_task(title="Charge lights to 100%")

    tasks = await repo.list(TaskListQuery(search="100%"))

    assert [t.id for t in tasks] == [exact.id]


async def test_default_sort_is_due_date_then_priority(repo: TaskRepository, make_task) -> None:
    a = await make_task(title="A", dueDate="2026-12-24", priority="low")
    b = await make_task(title="B", dueDate="2026-12-24", priority="high")
    c = await make_task(title="C", priority="high")
    d = await make_task(title="D", dueDate="2026-12-20")

    ascending = await repo.list(TaskListQuery())
    descending = await repo.list(TaskListQuery(sort_order=SortOrder.DESC))

    assert [t.id for t in ascending] == [d.id, b.id, a.id, c.id]
    # Undated tasks stay last in both directions
    assert [t.id for t in descending] == [b.id, a.id, d.id, c.id]


async def test_priority_sort_high_to_low(repo: TaskRepository, make_task) -> None:
    a = await make_task(title="A", priority="low")
    b = await make_task(title="B", priority="high")
    c = await make_task(title="C", priority="high")
    d = await make_task(title="D", priority="medium")

    ascending = await repo.list(TaskListQuery(sort_by=SortField.PRIORITY))
    descending = await repo.list(TaskListQuery(sort_by=SortField.PRIORITY, sort_order=SortOrder.DESC))

    assert [t.id for t in ascending] == [b.id, c.id, d.id, a.id]
    # Ties keep id order
    assert [t.id for t in descending] == [a.id, d.id, b.id, c.id]


async def test_title_sort(repo: TaskRepository, make_task) -> None:
    for title in ["Wrap", "Bake", "Sing", "Bake"]:
        await make_task(title=title)

    ascending = await repo.list(TaskListQuery(sort_by=SortField.TITLE))
    descending = await repo.list(TaskListQuery(sort_by=SortField.TITLE, sort_order=SortOrder.DESC))

    titles = [t.title for t in ascending]
    assert titles == sorted(titles)
    assert [t.title for t in descending] == ["Wrap", "Sing", "Bake", "Bake"]


def test_next_timestamp_moves_forward() -> None:
    now = datetime(2026, 12, 24, 12, 0, tzinfo=timezone.utc)

    assert next_timestamp(None, now) == now
    assert next_timestamp(now - timedelta(seconds=1), now) == now
    assert next_timestamp(now, now) == now + timedelta(microseconds=1)
    # Naive values read back from SQLite are treated as UTC
    naive_future = datetime(2026, 12, 24, 13, 0)
    assert next_timestamp(naive_future, now) == naive_future.replace(tzinfo=timezone.utc) + timedelta(microseconds=1)


async def _drop_tasks_table(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.mark.parametrize("task_id", [0, -1, TASK_ID_MAX + 1, 2 ** 64])
async def test_out_of_range_ids_are_not_found(repo: TaskRepository, task_id: int) -> None:
    assert await repo.get_by_id(task_id) is None
    assert await repo.update(task_id, {"title": "x"}) is None
    assert await repo.toggle_completed(task_id) is None
    assert await repo.delete(task_id) is False


async def test_search_folds_non_ascii_case(repo: TaskRepository, make_task) -> None:
    ecrire = await make_task(title="Écrire cartes")
    noel = await make_task(title="Réveillon", description="Dîner de NOËL")
    await make_task(title="Ecrire liste")

    assert [t.id for t in await repo.list(TaskListQuery(search="écrire"))] == [ecrire.id]
    assert [t.id for t in await repo.list(TaskListQuery(search="noël"))] == [noel.id]


async def test_database_error_becomes_storage_error(
    engine, repo: TaskRepository, make_task, caplog
) -> None:
    await make_task(title="Before the outage")
    await _drop_tasks_table(engine)

    with caplog.at_level(logging.ERROR, logger="app.features.tasks.repository"):
        with pytest.raises(StorageError):
            await repo.list(TaskListQuery())
        with pytest.raises(StorageError):
            await make_task(title="During the outage")

    assert "Failed to list tasks" in caplog.text
    assert "Failed to create task" in caplog.text

    # The session was rolled back and keeps working once the table is back
    await init_models(engine)
    task = await make_task(title="After the outage")
    assert [t.id for t in await repo.list(TaskListQuery())] == [task.id]
