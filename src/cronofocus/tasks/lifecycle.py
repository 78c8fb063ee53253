# src/cronofocus/tasks/lifecycle.py

"""
Task lifecycle controller.

transition() is a pure function: it computes the entry effects of moving a
task to a status and never rejects. Legality lives in check_transition(),
which callers apply when they want the state machine enforced:
- planned     -> in-progress | completed | skipped
- in-progress -> paused | completed | skipped
- paused      -> in-progress | completed | skipped
- completed, skipped: terminal
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

from ..core.clock import parse_iso, to_iso
from ..core.models import Task, TaskStatus
from ..errors import IllegalTransition

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PLANNED: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.SKIPPED}
    ),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.PAUSED, TaskStatus.COMPLETED, TaskStatus.SKIPPED}
    ),
    TaskStatus.PAUSED: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.SKIPPED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.SKIPPED: frozenset(),
}


def can_transition(current: TaskStatus | str, target: TaskStatus | str) -> bool:
    return TaskStatus.parse(target) in ALLOWED_TRANSITIONS[TaskStatus.parse(current)]


def check_transition(current: TaskStatus | str, target: TaskStatus | str) -> None:
    if not can_transition(current, target):
        raise IllegalTransition(str(current), str(target))


def elapsed_minutes(start: str, end: datetime) -> int:
    """Whole minutes between an ISO timestamp and `end`, halves rounded up."""
    if end.tzinfo is None:
        end = end.replace(tzinfo=UTC)
    ms = (end - parse_iso(start)) // timedelta(milliseconds=1)
    return (ms + 30_000) // 60_000


def transition(task: Task, status: TaskStatus | str, *, now: datetime) -> Task:
    target = TaskStatus.parse(status)
    stamp = to_iso(now)

    if target is TaskStatus.IN_PROGRESS:
        # Resuming keeps the first start.
        return replace(task, status=target, actual_start=task.actual_start or stamp)

    if target is TaskStatus.COMPLETED:
        duration = task.actual_duration
        if task.actual_start:
            duration = elapsed_minutes(task.actual_start, now)
        return replace(task, status=target, actual_end=stamp, actual_duration=duration)

    if target is TaskStatus.SKIPPED:
        return replace(task, status=target, actual_end=stamp, actual_duration=0)

    # paused / planned: status only
    return replace(task, status=target)
