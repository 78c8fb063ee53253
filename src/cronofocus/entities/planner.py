# src/cronofocus/entities/planner.py

"""
Days, tasks and distractions.

A Day is materialized lazily on first reference to a (user, date) pair.
Tasks point at their Day through `dayId` and are queried on their own.
Status changes go through the lifecycle controller; at most one task per
Day is in progress at any time (starting one pauses the other).
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

from ..core.clock import to_date_str
from ..core.models import (
    UNSET,
    Day,
    DayPatch,
    Distraction,
    Task,
    TaskPatch,
    TaskStatus,
    apply_patch,
    patch_changes,
)
from ..errors import ConstraintViolation, NotFound, ValidationError
from ..store.connection import Mode
from ..store.records import RecordEngine, RecordScope
from ..tasks.lifecycle import check_transition, transition

logger = logging.getLogger(__name__)

DateLike = date | datetime | str

_TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


def normalize_date(value: DateLike) -> str:
    try:
        return to_date_str(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}") from None


def _check_time(label: str, value: Any) -> None:
    if value in (None, ""):
        return
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise ValidationError(f"{label} must be HH:MM, got {value!r}")


def _minutes_between(start: str, end: str) -> int:
    sh, sm = (int(p) for p in start.split(":"))
    eh, em = (int(p) for p in end.split(":"))
    return max(0, (eh * 60 + em) - (sh * 60 + sm))


def _merged(stored: dict[str, Any], entity: Any) -> dict[str, Any]:
    # Keys we don't model (older app versions, imports) survive the rewrite.
    return {**stored, **entity.to_record()}


# ---- days ----


async def get_day(records: RecordEngine, user_id: str, day: DateLike) -> Day | None:
    rows = await records.get_by_index("days", "userDate", (user_id, normalize_date(day)))
    return Day.from_record(rows[0]) if rows else None


async def get_or_create_day(records: RecordEngine, user_id: str, day: DateLike) -> Day:
    """
    Return the Day for (user, date), creating it on first use.

    The (userId, date) unique index backs this up: if a concurrent caller
    inserts first, the constraint error is swallowed and its row returned.
    """
    date_str = normalize_date(day)
    existing = await get_day(records, user_id, date_str)
    if existing is not None:
        return existing

    try:
        rec = await records.add("days", Day(user_id=user_id, date=date_str).to_record())
    except ConstraintViolation:
        existing = await get_day(records, user_id, date_str)
        if existing is None:
            raise
        return existing

    logger.debug("Day created user=%s date=%s id=%s", user_id, date_str, rec["id"])
    return Day.from_record(rec)


async def get_days_by_range(
    records: RecordEngine, user_id: str, start: DateLike, end: DateLike
) -> list[Day]:
    rows = await records.get_by_index_range(
        "days", "userDate", (user_id, normalize_date(start)), (user_id, normalize_date(end))
    )
    return [Day.from_record(r) for r in rows]


async def update_day(records: RecordEngine, day_id: str, patch: DayPatch) -> Day:
    rec = await records.get("days", day_id)
    if rec is None:
        raise NotFound("days", day_id)
    day = apply_patch(Day.from_record(rec), patch)
    return Day.from_record(await records.update("days", _merged(rec, day)))


# ---- tasks ----


async def create_task(
    records: RecordEngine,
    user_id: str,
    day: DateLike,
    *,
    title: str,
    category: str = "",
    planned_start: str = "",
    planned_end: str = "",
    planned_duration: int | None = None,
    notes: str = "",
    description: str = "",
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required")
    _check_time("plannedStart", planned_start)
    _check_time("plannedEnd", planned_end)

    if planned_duration is None:
        planned_duration = (
            _minutes_between(planned_start, planned_end) if planned_start and planned_end else 0
        )
    if int(planned_duration) < 0:
        raise ValidationError("plannedDuration must not be negative")

    anchor = await get_or_create_day(records, user_id, day)
    task = Task(
        user_id=user_id,
        day_id=anchor.id,
        date=anchor.date,
        title=title,
        category=category,
        planned_start=planned_start,
        planned_end=planned_end,
        planned_duration=int(planned_duration),
        notes=notes,
        description=description,
    )
    rec = await records.add("tasks", task.to_record())
    logger.debug("Task created id=%s user=%s date=%s", rec["id"], user_id, anchor.date)
    return Task.from_record(rec)


async def get_task(records: RecordEngine, task_id: str) -> Task | None:
    rec = await records.get("tasks", task_id)
    return Task.from_record(rec) if rec else None


async def get_tasks_by_day(records: RecordEngine, user_id: str, day: DateLike) -> list[Task]:
    """Tasks of one day ordered by planned start ("HH:MM" sorts correctly as text)."""
    rows = await records.get_by_index("tasks", "userDate", (user_id, normalize_date(day)))
    tasks = [Task.from_record(r) for r in rows]
    tasks.sort(key=lambda t: t.planned_start)
    return tasks


async def get_tasks_by_date_range(
    records: RecordEngine, user_id: str, start: DateLike, end: DateLike
) -> list[Task]:
    rows = await records.get_by_index_range(
        "tasks", "userDate", (user_id, normalize_date(start)), (user_id, normalize_date(end))
    )
    tasks = [Task.from_record(r) for r in rows]
    tasks.sort(key=lambda t: (t.date, t.planned_start))
    return tasks


async def update_task(records: RecordEngine, task_id: str, patch: TaskPatch) -> Task:
    changes = patch_changes(patch)
    _check_time("plannedStart", changes.get("planned_start"))
    _check_time("plannedEnd", changes.get("planned_end"))
    if "title" in changes and not str(changes["title"] or "").strip():
        raise ValidationError("Task title is required")

    rec = await records.get("tasks", task_id)
    if rec is None:
        raise NotFound("tasks", task_id)
    task = apply_patch(Task.from_record(rec), patch)
    return Task.from_record(await records.update("tasks", _merged(rec, task)))


async def move_task(records: RecordEngine, task_id: str, new_start: str, new_end: str) -> Task:
    return await update_task(records, task_id, TaskPatch(planned_start=new_start, planned_end=new_end))


async def duplicate_task(records: RecordEngine, task_id: str) -> Task:
    source = await get_task(records, task_id)
    if source is None:
        raise NotFound("tasks", task_id)
    return await create_task(
        records,
        source.user_id,
        source.date,
        title=source.title,
        category=source.category,
        planned_start=source.planned_start,
        planned_end=source.planned_end,
        planned_duration=source.planned_duration,
        description=source.description,
    )


async def delete_task(records: RecordEngine, task_id: str) -> None:
    """Remove a task together with its distractions. No-op if absent."""

    def work(scope: RecordScope) -> None:
        for d in scope.get_by_index("distractions", "taskId", task_id):
            scope.remove("distractions", d["id"])
        scope.remove("tasks", task_id)

    await records.batch(("tasks", "distractions"), Mode.READWRITE, work)


async def get_in_progress_task(records: RecordEngine, user_id: str, day: DateLike) -> Task | None:
    for task in await get_tasks_by_day(records, user_id, day):
        if task.status is TaskStatus.IN_PROGRESS:
            return task
    return None


# ---- lifecycle ----


def _apply_status(
    scope: RecordScope,
    task_id: str,
    status: TaskStatus,
    patch: TaskPatch | None,
    *,
    strict: bool,
) -> dict[str, Any]:
    rec = scope.get("tasks", task_id)
    if rec is None:
        raise NotFound("tasks", task_id)
    task = Task.from_record(rec)
    if strict:
        check_transition(task.status, status)
    if patch is not None:
        task = apply_patch(task, patch)
    previous = task.status
    task = transition(task, status, now=scope.now_dt())
    logger.debug("Task %s: %s -> %s", task_id, previous, task.status)
    return scope.update("tasks", _merged(rec, task))


async def update_task_status(
    records: RecordEngine,
    task_id: str,
    status: TaskStatus | str,
    patch: TaskPatch | None = None,
    *,
    strict: bool = False,
) -> Task:
    """
    Move a task to `status`, merging `patch` first.

    Without `strict` any edge is accepted (the controller only computes
    effects); with it, edges outside ALLOWED_TRANSITIONS raise IllegalTransition.
    """
    target = TaskStatus.parse(status)
    rec = await records.batch(
        "tasks",
        Mode.READWRITE,
        lambda scope: _apply_status(scope, task_id, target, patch, strict=strict),
    )
    return Task.from_record(rec)


async def start_task(records: RecordEngine, task_id: str) -> Task:
    """Start (or resume) a task, pausing whichever task of the same day is running."""

    def work(scope: RecordScope) -> dict[str, Any]:
        rec = scope.get("tasks", task_id)
        if rec is None:
            raise NotFound("tasks", task_id)
        task = Task.from_record(rec)
        if task.status is TaskStatus.IN_PROGRESS:
            return rec
        check_transition(task.status, TaskStatus.IN_PROGRESS)

        for other in scope.get_by_index("tasks", "dayId", task.day_id):
            if other["id"] == task_id:
                continue
            if TaskStatus.from_db(other.get("status")) is TaskStatus.IN_PROGRESS:
                _apply_status(scope, other["id"], TaskStatus.PAUSED, None, strict=False)
                logger.info("Task %s paused: task %s started on the same day", other["id"], task_id)

        return _apply_status(scope, task_id, TaskStatus.IN_PROGRESS, None, strict=True)

    return Task.from_record(await records.batch("tasks", Mode.READWRITE, work))


async def pause_task(records: RecordEngine, task_id: str) -> Task:
    return await update_task_status(records, task_id, TaskStatus.PAUSED, strict=True)


async def complete_task(
    records: RecordEngine,
    task_id: str,
    *,
    rating: int | None = None,
    completion_notes: str | None = None,
) -> Task:
    patch = TaskPatch(
        rating=UNSET if rating is None else rating,
        completion_notes=UNSET if completion_notes is None else completion_notes,
    )
    return await update_task_status(records, task_id, TaskStatus.COMPLETED, patch, strict=True)


async def skip_task(records: RecordEngine, task_id: str, reason: str = "") -> Task:
    return await update_task_status(
        records, task_id, TaskStatus.SKIPPED, TaskPatch(skip_reason=reason), strict=True
    )


# ---- distractions ----


async def add_distraction(
    records: RecordEngine, task_id: str, user_id: str, description: str = ""
) -> Distraction:
    """Log a distraction and append its id to the task, atomically."""

    def work(scope: RecordScope) -> dict[str, Any]:
        task_rec = scope.get("tasks", task_id)
        if task_rec is None:
            raise NotFound("tasks", task_id)
        distraction = Distraction(
            task_id=task_id,
            user_id=user_id,
            timestamp=scope.now(),
            description=(description or "").strip(),
        )
        rec = scope.add("distractions", distraction.to_record())
        task_rec["distractions"] = [*(task_rec.get("distractions") or []), rec["id"]]
        scope.update("tasks", task_rec)
        return rec

    rec = await records.batch(("tasks", "distractions"), Mode.READWRITE, work)
    return Distraction.from_record(rec)


async def get_distractions_by_task(records: RecordEngine, task_id: str) -> list[Distraction]:
    rows = await records.get_by_index("distractions", "taskId", task_id)
    out = [Distraction.from_record(r) for r in rows]
    out.sort(key=lambda d: d.timestamp)
    return out
