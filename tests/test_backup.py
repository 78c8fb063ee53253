# tests/test_backup.py

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from cronofocus.backup.snapshot import (
    backup_filename,
    dump_snapshot,
    export_all_data,
    import_data,
    load_snapshot,
    write_backup,
)
from cronofocus.entities.exports import get_export_history
from cronofocus.entities.planner import add_distraction, create_task, get_tasks_by_date_range, start_task
from cronofocus.entities.preferences import create_category, get_categories_by_user
from cronofocus.entities.users import create_user
from cronofocus.errors import ImportFormatError, NotFound

from .fakes import fake_hash


async def _seed(records) -> str:
    user = await create_user(records, username="alice", password_hash=fake_hash("pw"))
    t1 = await create_task(records, user.id, "2024-01-01", title="plan", category="work",
                           planned_start="09:00", planned_end="10:00")
    await create_task(records, user.id, "2024-01-02", title="gym", category="exercise",
                      planned_start="18:00", planned_end="19:00")
    await start_task(records, t1.id)
    await add_distraction(records, t1.id, user.id, "phone")
    await create_category(records, user.id, name="Reading")
    return user.id


def _strip(rec: dict, *keys: str) -> dict:
    return {k: v for k, v in rec.items() if k not in keys}


def _by_date(rows: list[dict]) -> list[dict]:
    return sorted(rows, key=lambda r: r["date"])


@pytest.mark.asyncio
async def test_export_shape(records) -> None:
    user_id = await _seed(records)
    snap = await export_all_data(records, user_id)

    assert snap["meta"] == {"exportDate": "2024-01-01T10:00:00.000Z", "version": 1, "app": "CronoFocus"}
    assert snap["user"]["id"] == user_id
    assert "passwordHash" not in snap["user"]
    assert len(snap["days"]) == 2
    assert len(snap["tasks"]) == 2
    assert len(snap["categories"]) == 9
    assert snap["settings"]["userId"] == user_id
    assert [d["description"] for d in snap["distractions"]] == ["phone"]


@pytest.mark.asyncio
async def test_export_unknown_user(records) -> None:
    with pytest.raises(NotFound):
        await export_all_data(records, "ghost")


@pytest.mark.asyncio
async def test_round_trip_into_empty_profile(records) -> None:
    source = await _seed(records)
    snap = await export_all_data(records, source)
    target = (await create_user(records, username="bob")).id

    summary = await import_data(records, snap, target)
    assert (summary.days, summary.reused_days, summary.tasks, summary.categories) == (2, 0, 2, 1)

    again = await export_all_data(records, target)
    assert [_strip(d, "id", "userId") for d in _by_date(again["days"])] == [
        _strip(d, "id", "userId") for d in _by_date(snap["days"])
    ]
    old_tasks = _by_date(snap["tasks"])
    new_tasks = _by_date(again["tasks"])
    assert [_strip(t, "id", "userId", "dayId") for t in new_tasks] == [
        _strip(t, "id", "userId", "dayId") for t in old_tasks
    ]

    day_ids = {d["id"] for d in again["days"]}
    assert all(t["dayId"] in day_ids for t in new_tasks)
    assert not {t["id"] for t in new_tasks} & {t["id"] for t in old_tasks}

    names = [c.name for c in await get_categories_by_user(records, target)]
    assert names.count("Reading") == 1
    assert len(names) == 9


@pytest.mark.asyncio
async def test_second_import_reuses_days_and_duplicates_tasks(records) -> None:
    source = await _seed(records)
    snap = await export_all_data(records, source)
    target = (await create_user(records, username="bob")).id

    await import_data(records, snap, target)
    summary = await import_data(records, snap, target)

    assert (summary.days, summary.reused_days) == (0, 2)
    tasks = await get_tasks_by_date_range(records, target, "2024-01-01", "2024-01-02")
    assert len(tasks) == 4
    assert len({t.day_id for t in tasks}) == 2


@pytest.mark.asyncio
async def test_task_without_snapshot_day_gets_one(records) -> None:
    target = (await create_user(records, username="bob")).id
    snap = {
        "meta": {"app": "CronoFocus", "version": 1},
        "tasks": [{"id": "old", "dayId": "gone", "date": "2024-03-01", "title": "orphan"}],
    }

    summary = await import_data(records, snap, target)
    assert (summary.days, summary.tasks) == (1, 1)
    (task,) = await get_tasks_by_date_range(records, target, "2024-03-01", "2024-03-01")
    assert task.day_id != "gone"


@pytest.mark.asyncio
async def test_tasks_without_ids_bind_to_day_of_their_own_date(records) -> None:
    target = (await create_user(records, username="bob")).id
    snap = {
        "meta": {"app": "CronoFocus", "version": 1},
        "days": [{"date": "2024-01-01", "notes": "kickoff"}],
        "tasks": [
            {"date": "2024-01-05", "title": "no day id"},
            {"date": "2024-01-01", "title": "same date"},
            {"date": "2024-01-06", "dayId": "d-other", "title": "dangling"},
        ],
    }

    summary = await import_data(records, snap, target)
    assert (summary.days, summary.tasks) == (3, 3)

    tasks = await get_tasks_by_date_range(records, target, "2024-01-01", "2024-01-06")
    for task in tasks:
        day = await records.get("days", task.day_id)
        assert day["date"] == task.date


@pytest.mark.asyncio
async def test_mismatched_day_id_falls_back_to_task_date(records) -> None:
    target = (await create_user(records, username="bob")).id
    snap = {
        "meta": {"app": "CronoFocus", "version": 1},
        "days": [{"id": "d1", "date": "2024-01-01"}],
        "tasks": [{"dayId": "d1", "date": "2024-01-02", "title": "moved"}],
    }

    await import_data(records, snap, target)
    (task,) = await get_tasks_by_date_range(records, target, "2024-01-02", "2024-01-02")
    assert (await records.get("days", task.day_id))["date"] == "2024-01-02"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "snap",
    [
        [],
        {"days": []},
        {"meta": {"version": 1}},
        {"meta": {"app": "SomethingElse"}},
        {"meta": {"app": "CronoFocus"}, "tasks": "nope"},
        {"meta": {"app": "CronoFocus"}, "days": [{"id": "d1"}]},
    ],
)
async def test_bad_snapshots_are_rejected(records, snap) -> None:
    with pytest.raises(ImportFormatError):
        await import_data(records, snap, "u1")
    assert await records.count("days") == 0
    assert await records.count("tasks") == 0


def test_backup_filename() -> None:
    assert backup_filename(date(2024, 3, 5)) == "cronofocus_backup_2024-03-05.json"


def test_dump_and_load(tmp_path: Path) -> None:
    path = tmp_path / "out" / "b.json"
    snap = {"meta": {"app": "CronoFocus"}, "user": {"displayName": "Zoë"}}

    size = dump_snapshot(snap, path)
    assert size == path.stat().st_size
    assert not path.with_suffix(".tmp").exists()
    assert load_snapshot(path) == snap


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_load_rejects_non_objects(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content, "utf-8")
    with pytest.raises(ImportFormatError):
        load_snapshot(path)


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ImportFormatError):
        load_snapshot(tmp_path / "missing.json")


@pytest.mark.asyncio
async def test_write_backup_logs_export(records, tmp_path: Path) -> None:
    user_id = await _seed(records)

    path = await write_backup(records, user_id, tmp_path)
    assert path.name == "cronofocus_backup_2024-01-01.json"
    assert json.loads(path.read_text("utf-8"))["user"]["id"] == user_id

    (entry,) = await get_export_history(records, user_id)
    assert (entry.format, entry.filename, entry.size) == ("json", path.name, path.stat().st_size)
