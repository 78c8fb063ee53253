# src/cronofocus/core/models.py

"""
Entity dataclasses and patch types.

Stored documents use camelCase keys (`userId`, `plannedStart`, ...); the
dataclasses use snake_case. to_record()/from_record() convert between them,
and from_record() ignores keys it does not know.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from typing import Any, TypeVar

from ..errors import ValidationError

E = TypeVar("E")

UNSET: Any = object()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def _plain(value: Any) -> Any:
    if isinstance(value, StrEnum):
        return value.value
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


class RecordMixin:
    __slots__ = ()

    def to_record(self) -> dict[str, Any]:
        return {_camel(f.name): _plain(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        kwargs: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = _camel(f.name)
            if key in record:
                kwargs[f.name] = record[key]
        return cls(**kwargs)


class TaskStatus(StrEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PLANNED
        try:
            return cls(raw)
        except ValueError:
            return cls.PLANNED

    @classmethod
    def parse(cls, raw: TaskStatus | str) -> TaskStatus:
        """Strict counterpart of from_db, for caller input."""
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown task status {raw!r}") from None

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.SKIPPED)


@dataclass(slots=True)
class User(RecordMixin):
    id: str = ""
    username: str = ""
    display_name: str = ""
    email: str = ""
    avatar_color: str = ""
    password_hash: str | None = None
    has_password: bool = False
    encryption_enabled: bool = False
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class Day(RecordMixin):
    id: str = ""
    user_id: str = ""
    date: str = ""
    notes: str = ""
    mood: Any = None
    energy_level: int | None = None
    goals: list[str] = field(default_factory=list)
    summary: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class Task(RecordMixin):
    id: str = ""
    user_id: str = ""
    day_id: str = ""
    date: str = ""
    title: str = ""
    category: str = ""
    planned_start: str = ""
    planned_end: str = ""
    planned_duration: int = 0
    status: TaskStatus = TaskStatus.PLANNED

    # Written by the lifecycle controller only.
    actual_start: str | None = None
    actual_end: str | None = None
    actual_duration: int | None = None

    distractions: list[str] = field(default_factory=list)
    notes: str = ""
    description: str = ""
    rating: int | None = None
    completion_notes: str = ""
    skip_reason: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        self.status = TaskStatus.from_db(self.status)


@dataclass(slots=True)
class Category(RecordMixin):
    id: str = ""
    user_id: str = ""
    name: str = ""
    color: str = ""
    icon: str = ""
    is_default: bool = False
    key: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class UserSettings(RecordMixin):
    user_id: str = ""
    time_interval: int = 30  # minutes
    day_start_hour: int = 6
    day_end_hour: int = 23
    notifications_enabled: bool = True
    sound_enabled: bool = True
    sound_volume: float = 0.3
    reminder_minutes: int = 5
    theme: str = "dark"
    week_starts_on: int = 0  # 0 = Sunday
    date_format: str = "DD/MM/YYYY"
    time_format: str = "24h"
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def defaults_for(cls, user_id: str) -> UserSettings:
        return cls(user_id=user_id)


@dataclass(slots=True)
class Distraction(RecordMixin):
    id: str = ""
    task_id: str = ""
    user_id: str = ""
    timestamp: str = ""
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class ExportRecord(RecordMixin):
    id: str = ""
    user_id: str = ""
    format: str = ""
    date: str = ""
    size: int | None = None
    date_range: Any = None
    filename: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


# ---- patch types ----
# Every field defaults to UNSET; only fields explicitly set are merged.


@dataclass(frozen=True, slots=True)
class UserPatch:
    display_name: Any = UNSET
    email: Any = UNSET
    avatar_color: Any = UNSET
    encryption_enabled: Any = UNSET
    password_hash: Any = UNSET


@dataclass(frozen=True, slots=True)
class DayPatch:
    notes: Any = UNSET
    mood: Any = UNSET
    energy_level: Any = UNSET
    goals: Any = UNSET
    summary: Any = UNSET


@dataclass(frozen=True, slots=True)
class TaskPatch:
    title: Any = UNSET
    category: Any = UNSET
    planned_start: Any = UNSET
    planned_end: Any = UNSET
    planned_duration: Any = UNSET
    notes: Any = UNSET
    description: Any = UNSET
    rating: Any = UNSET
    completion_notes: Any = UNSET
    skip_reason: Any = UNSET


@dataclass(frozen=True, slots=True)
class CategoryPatch:
    name: Any = UNSET
    color: Any = UNSET
    icon: Any = UNSET


@dataclass(frozen=True, slots=True)
class SettingsPatch:
    time_interval: Any = UNSET
    day_start_hour: Any = UNSET
    day_end_hour: Any = UNSET
    notifications_enabled: Any = UNSET
    sound_enabled: Any = UNSET
    sound_volume: Any = UNSET
    reminder_minutes: Any = UNSET
    theme: Any = UNSET
    week_starts_on: Any = UNSET
    date_format: Any = UNSET
    time_format: Any = UNSET


def patch_changes(patch: Any) -> dict[str, Any]:
    return {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if getattr(patch, f.name) is not UNSET
    }


def apply_patch(entity: E, patch: Any) -> E:
    """The one merge rule for partial updates: set fields win, unset fields keep the entity's value."""
    changes = patch_changes(patch)
    if not changes:
        return entity
    known = {f.name for f in fields(entity)}  # type: ignore[arg-type]
    unknown = set(changes) - known
    if unknown:
        raise TypeError(f"{type(patch).__name__} sets unknown fields: {sorted(unknown)}")
    return replace(entity, **changes)  # type: ignore[type-var]
