# src/cronofocus/stats/engine.py

"""
Day and week aggregation over Task records.

Pure read side: tasks are fetched through the planner entity operations,
never straight from the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from ..core.models import Task, TaskStatus
from ..entities.planner import DateLike, get_tasks_by_date_range, get_tasks_by_day, normalize_date
from ..store.records import RecordEngine


def percent(part: int, whole: int) -> int:
    """round(part / whole * 100) with halves rounded up; 0 when whole is 0."""
    part, whole = int(part), int(whole)
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


@dataclass(slots=True)
class CategoryBreakdown:
    count: int = 0
    planned_minutes: int = 0
    actual_minutes: int = 0
    completed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "count": self.count,
            "plannedMinutes": self.planned_minutes,
            "actualMinutes": self.actual_minutes,
            "completed": self.completed,
        }


@dataclass(slots=True)
class DayStats:
    date: str
    total_tasks: int = 0
    planned: int = 0
    in_progress: int = 0
    paused: int = 0
    completed: int = 0
    skipped: int = 0
    total_planned_minutes: int = 0
    total_actual_minutes: int = 0
    total_distractions: int = 0
    completion_rate: int = 0
    efficiency_rate: int = 0
    by_category: dict[str, CategoryBreakdown] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "totalTasks": self.total_tasks,
            "planned": self.planned,
            "inProgress": self.in_progress,
            "paused": self.paused,
            "completed": self.completed,
            "skipped": self.skipped,
            "totalPlannedMinutes": self.total_planned_minutes,
            "totalActualMinutes": self.total_actual_minutes,
            "totalDistractions": self.total_distractions,
            "completionRate": self.completion_rate,
            "efficiencyRate": self.efficiency_rate,
            "byCategory": {k: v.to_dict() for k, v in self.by_category.items()},
        }


@dataclass(slots=True)
class DailySummary:
    date: str
    completed: int = 0
    total: int = 0
    minutes: int = 0

    @property
    def rate(self) -> int:
        return percent(self.completed, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "completed": self.completed,
            "total": self.total,
            "minutes": self.minutes,
            "rate": self.rate,
        }


@dataclass(slots=True)
class WeekStats:
    week_start: str
    week_end: str
    total_tasks: int = 0
    completed: int = 0
    total_planned_minutes: int = 0
    total_actual_minutes: int = 0
    most_productive_day: str | None = None
    # Part of the result shape; no algorithm fills it.
    most_productive_hour: int | None = None
    by_category: dict[str, int] = field(default_factory=dict)
    daily_completion: list[DailySummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekStart": self.week_start,
            "weekEnd": self.week_end,
            "totalTasks": self.total_tasks,
            "completed": self.completed,
            "totalPlannedMinutes": self.total_planned_minutes,
            "totalActualMinutes": self.total_actual_minutes,
            "mostProductiveDay": self.most_productive_day,
            "mostProductiveHour": self.most_productive_hour,
            "byCategory": dict(self.by_category),
            "dailyCompletion": [d.to_dict() for d in self.daily_completion],
        }


_STATUS_FIELD = {
    TaskStatus.PLANNED: "planned",
    TaskStatus.IN_PROGRESS: "in_progress",
    TaskStatus.PAUSED: "paused",
    TaskStatus.COMPLETED: "completed",
    TaskStatus.SKIPPED: "skipped",
}


def summarize_day(day: str, tasks: list[Task]) -> DayStats:
    stats = DayStats(date=day)
    for task in tasks:
        stats.total_tasks += 1
        status_field = _STATUS_FIELD[task.status]
        setattr(stats, status_field, getattr(stats, status_field) + 1)

        planned = int(task.planned_duration or 0)
        actual = int(task.actual_duration or 0)
        stats.total_planned_minutes += planned
        stats.total_actual_minutes += actual
        stats.total_distractions += len(task.distractions or [])

        cat = stats.by_category.setdefault(task.category, CategoryBreakdown())
        cat.count += 1
        cat.planned_minutes += planned
        cat.actual_minutes += actual
        if task.status is TaskStatus.COMPLETED:
            cat.completed += 1

    stats.completion_rate = percent(stats.completed, stats.total_tasks)
    stats.efficiency_rate = percent(stats.total_actual_minutes, stats.total_planned_minutes)
    return stats


def summarize_week(week_start: str, tasks: list[Task]) -> WeekStats:
    start = date.fromisoformat(week_start)
    dates = [(start + timedelta(days=i)).isoformat() for i in range(7)]
    daily = {d: DailySummary(date=d) for d in dates}
    stats = WeekStats(week_start=dates[0], week_end=dates[-1])

    for task in tasks:
        actual = int(task.actual_duration or 0)
        stats.total_tasks += 1
        stats.total_planned_minutes += int(task.planned_duration or 0)
        stats.total_actual_minutes += actual

        summary = daily.get(task.date)
        if summary is not None:
            summary.total += 1
            if task.status is TaskStatus.COMPLETED:
                summary.completed += 1
                summary.minutes += actual
                stats.completed += 1

        stats.by_category[task.category] = stats.by_category.get(task.category, 0) + 1

    # Strict '>' over ascending dates: ties go to the earliest day.
    best_minutes = 0
    for d in dates:
        summary = daily[d]
        stats.daily_completion.append(summary)
        if summary.minutes > best_minutes:
            best_minutes = summary.minutes
            stats.most_productive_day = d

    return stats


async def get_day_stats(records: RecordEngine, user_id: str, day: DateLike) -> DayStats:
    day_str = normalize_date(day)
    return summarize_day(day_str, await get_tasks_by_day(records, user_id, day_str))


async def get_week_stats(records: RecordEngine, user_id: str, week_start: DateLike) -> WeekStats:
    start = normalize_date(week_start)
    end = (date.fromisoformat(start) + timedelta(days=6)).isoformat()
    tasks = await get_tasks_by_date_range(records, user_id, start, end)
    return summarize_week(start, tasks)
