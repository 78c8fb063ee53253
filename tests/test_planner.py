# tests/test_planner.py

from __future__ import annotations

from datetime import date

import pytest

from cronofocus.core.models import DayPatch, TaskPatch, TaskStatus
from cronofocus.entities.planner import (
    add_distraction,
    complete_task,
    create_task,
    delete_task,
    duplicate_task,
    get_day,
    get_days_by_range,
    get_distractions_by_task,
    get_in_progress_task,
    get_or_create_day,
    get_task,
    get_tasks_by_date_range,
    get_tasks_by_day,
    move_task,
    pause_task,
    skip_task,
    start_task,
    update_day,
    update_task,
    update_task_status,
)
from cronofocus.errors import IllegalTransition, NotFound, ValidationError

DAY = "2024-01-01"


@pytest.mark.asyncio
async def test_get_or_create_day_is_idempotent(records) -> None:
    first = await get_or_create_day(records, "u1", date(2024, 1, 1))
    second = await get_or_create_day(records, "u1", DAY)

    assert first.id == second.id
    assert first.date == DAY
    assert await records.count("days") == 1
    assert (await get_day(records, "u1", DAY)).id == first.id
    assert await get_day(records, "u2", DAY) is None


@pytest.mark.asyncio
async def test_invalid_date_is_validation_error(records) -> None:
    with pytest.raises(ValidationError):
        await get_or_create_day(records, "u1", "2024-13-40")


@pytest.mark.asyncio
async def test_days_by_range_and_update(records) -> None:
    for d in ("2024-01-03", "2024-01-01", "2024-01-05"):
        await get_or_create_day(records, "u1", d)

    days = await get_days_by_range(records, "u1", "2024-01-01", "2024-01-03")
    assert [d.date for d in days] == ["2024-01-01", "2024-01-03"]

    updated = await update_day(records, days[0].id, DayPatch(notes="deep work", mood=4))
    assert updated.notes == "deep work"
    assert updated.mood == 4

    with pytest.raises(NotFound):
        await update_day(records, "missing", DayPatch(notes="x"))


@pytest.mark.asyncio
async def test_create_task_binds_day_and_computes_duration(records) -> None:
    task = await create_task(
        records, "u1", DAY, title=" Write report ", category="work",
        planned_start="09:00", planned_end="10:30",
    )

    day = await get_day(records, "u1", DAY)
    assert task.day_id == day.id
    assert task.title == "Write report"
    assert task.planned_duration == 90
    assert task.status is TaskStatus.PLANNED
    assert task.distractions == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": ""},
        {"title": "x", "planned_start": "9:00"},
        {"title": "x", "planned_end": "24:00"},
        {"title": "x", "planned_duration": -5},
    ],
)
async def test_create_task_validation(records, kwargs) -> None:
    with pytest.raises(ValidationError):
        await create_task(records, "u1", DAY, **kwargs)


@pytest.mark.asyncio
async def test_task_queries_are_sorted(records) -> None:
    await create_task(records, "u1", "2024-01-02", title="late", planned_start="08:00", planned_end="09:00")
    await create_task(records, "u1", DAY, title="b", planned_start="14:00", planned_end="15:00")
    await create_task(records, "u1", DAY, title="a", planned_start="09:00", planned_end="10:00")
    await create_task(records, "u2", DAY, title="other user", planned_start="07:00", planned_end="08:00")

    assert [t.title for t in await get_tasks_by_day(records, "u1", DAY)] == ["a", "b"]
    window = await get_tasks_by_date_range(records, "u1", DAY, "2024-01-02")
    assert [t.title for t in window] == ["a", "b", "late"]


@pytest.mark.asyncio
async def test_update_move_duplicate(records) -> None:
    task = await create_task(records, "u1", DAY, title="read", planned_start="09:00", planned_end="10:00")

    renamed = await update_task(records, task.id, TaskPatch(title="read book", notes="ch. 3"))
    assert renamed.title == "read book"
    assert renamed.planned_start == "09:00"

    moved = await move_task(records, task.id, "11:00", "12:00")
    assert (moved.planned_start, moved.planned_end) == ("11:00", "12:00")

    copy = await duplicate_task(records, task.id)
    assert copy.id != task.id
    assert copy.title == "read book"
    assert copy.status is TaskStatus.PLANNED
    assert copy.day_id == task.day_id

    with pytest.raises(ValidationError):
        await update_task(records, task.id, TaskPatch(planned_end="noon"))
    with pytest.raises(NotFound):
        await update_task(records, "missing", TaskPatch(title="x"))


@pytest.mark.asyncio
async def test_update_keeps_unknown_stored_fields(records) -> None:
    task = await create_task(records, "u1", DAY, title="t")
    rec = await records.get("tasks", task.id)
    await records.update("tasks", {**rec, "color": "#fff"})

    await update_task(records, task.id, TaskPatch(title="t2"))
    assert (await records.get("tasks", task.id))["color"] == "#fff"


@pytest.mark.asyncio
async def test_starting_a_task_pauses_the_running_one(records, clock) -> None:
    a = await create_task(records, "u1", DAY, title="a")
    b = await create_task(records, "u1", DAY, title="b")
    other_day = await create_task(records, "u1", "2024-01-02", title="c")

    await start_task(records, a.id)
    await start_task(records, other_day.id)
    clock.advance(minutes=10)
    started_b = await start_task(records, b.id)

    assert started_b.status is TaskStatus.IN_PROGRESS
    assert (await get_task(records, a.id)).status is TaskStatus.PAUSED
    assert (await get_task(records, other_day.id)).status is TaskStatus.IN_PROGRESS
    assert (await get_in_progress_task(records, "u1", DAY)).id == b.id

    running = [t for t in await get_tasks_by_day(records, "u1", DAY) if t.status is TaskStatus.IN_PROGRESS]
    assert len(running) == 1


@pytest.mark.asyncio
async def test_start_is_noop_when_already_running(records, clock) -> None:
    task = await create_task(records, "u1", DAY, title="a")
    first = await start_task(records, task.id)
    clock.advance(minutes=1)
    again = await start_task(records, task.id)
    assert again.actual_start == first.actual_start


@pytest.mark.asyncio
async def test_complete_pause_skip_through_entity_ops(records, clock) -> None:
    task = await create_task(records, "u1", DAY, title="focus")
    await start_task(records, task.id)
    clock.advance(minutes=2)
    await pause_task(records, task.id)
    clock.advance(minutes=1)

    done = await complete_task(records, task.id, rating=5, completion_notes="good")
    assert done.status is TaskStatus.COMPLETED
    assert done.actual_duration == 3
    assert done.rating == 5
    assert done.completion_notes == "good"

    with pytest.raises(IllegalTransition):
        await start_task(records, task.id)

    other = await create_task(records, "u1", DAY, title="gym")
    skipped = await skip_task(records, other.id, "too tired")
    assert skipped.actual_duration == 0
    assert skipped.skip_reason == "too tired"

    with pytest.raises(IllegalTransition):
        await pause_task(records, other.id)


@pytest.mark.asyncio
async def test_update_task_status_without_guard(records) -> None:
    task = await create_task(records, "u1", DAY, title="x")
    paused = await update_task_status(records, task.id, "paused")
    assert paused.status is TaskStatus.PAUSED
    assert paused.actual_start is None

    with pytest.raises(NotFound):
        await update_task_status(records, "missing", TaskStatus.COMPLETED)


@pytest.mark.asyncio
async def test_distractions_are_linked_and_deleted_with_task(records, clock) -> None:
    task = await create_task(records, "u1", DAY, title="x")
    d1 = await add_distraction(records, task.id, "u1", "phone")
    clock.advance(seconds=30)
    d2 = await add_distraction(records, task.id, "u1", "email")

    assert (await get_task(records, task.id)).distractions == [d1.id, d2.id]
    assert [d.description for d in await get_distractions_by_task(records, task.id)] == ["phone", "email"]

    with pytest.raises(NotFound):
        await add_distraction(records, "missing", "u1", "x")
    assert await records.count("distractions") == 2

    await delete_task(records, task.id)
    assert await get_task(records, task.id) is None
    assert await records.count("distractions") == 0
    await delete_task(records, task.id)


@pytest.mark.asyncio
async def test_unknown_status_is_validation_error(records) -> None:
    task = await create_task(records, "u1", DAY, title="x")

    with pytest.raises(ValidationError, match="Unknown task status"):
        await update_task_status(records, task.id, "done")
    assert (await get_task(records, task.id)).status is TaskStatus.PLANNED
