# src/cronofocus/store/schema.py

"""
Schema registry: collections, key paths and secondary indexes.

Every collection maps to one SQLite table:
- the key path column is the PRIMARY KEY,
- each indexed field gets its own column (copied out of the JSON document),
- the whole record lives as JSON in the `doc` column.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..errors import UnknownCollection

SCHEMA_VERSION = 1


@dataclass(frozen=True, slots=True)
class IndexSpec:
    name: str
    key_path: tuple[str, ...]
    unique: bool = False

    @property
    def is_composite(self) -> bool:
        return len(self.key_path) > 1


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    name: str
    key_path: str
    indexes: tuple[IndexSpec, ...] = ()

    def index(self, name: str) -> IndexSpec:
        for idx in self.indexes:
            if idx.name == name:
                return idx
        raise KeyError(f"Collection {self.name!r} has no index {name!r}")

    @property
    def indexed_fields(self) -> list[str]:
        """Every field that needs its own column, in declaration order, without duplicates."""
        out: list[str] = []
        for idx in self.indexes:
            for f in idx.key_path:
                if f != self.key_path and f not in out:
                    out.append(f)
        return out

    def create_table_sql(self) -> str:
        cols = [f'"{self.key_path}" TEXT PRIMARY KEY NOT NULL']
        # No declared type: SQLite keeps the value's own storage class (int/real/text).
        cols += [f'"{f}"' for f in self.indexed_fields]
        cols.append("doc TEXT NOT NULL")
        return f'CREATE TABLE IF NOT EXISTS "{self.name}" ({", ".join(cols)})'

    def create_index_sql(self) -> list[str]:
        out: list[str] = []
        for idx in self.indexes:
            unique = "UNIQUE " if idx.unique else ""
            cols = ", ".join(f'"{f}"' for f in idx.key_path)
            out.append(
                f'CREATE {unique}INDEX IF NOT EXISTS "idx_{self.name}_{idx.name}" '
                f'ON "{self.name}" ({cols})'
            )
        return out


def _idx(name: str, *key_path: str, unique: bool = False) -> IndexSpec:
    return IndexSpec(name=name, key_path=tuple(key_path or (name,)), unique=unique)


class SchemaRegistry:
    """Lookup table of collection specs keyed by name."""

    def __init__(self, collections: Iterable[CollectionSpec], *, version: int = SCHEMA_VERSION) -> None:
        self._collections = {c.name: c for c in collections}
        self.version = version

    def __contains__(self, name: object) -> bool:
        return name in self._collections

    def __iter__(self):
        return iter(self._collections.values())

    def names(self) -> list[str]:
        return list(self._collections)

    def get(self, name: str) -> CollectionSpec:
        try:
            return self._collections[name]
        except KeyError:
            raise UnknownCollection(name) from None


SCHEMA = SchemaRegistry(
    [
        CollectionSpec(
            "users",
            "id",
            (
                _idx("username", unique=True),
                _idx("email"),
            ),
        ),
        CollectionSpec(
            "days",
            "id",
            (
                _idx("userId"),
                _idx("date"),
                _idx("userDate", "userId", "date", unique=True),
            ),
        ),
        CollectionSpec(
            "tasks",
            "id",
            (
                _idx("dayId"),
                _idx("userId"),
                _idx("date"),
                _idx("category"),
                _idx("status"),
                _idx("userDate", "userId", "date"),
            ),
        ),
        CollectionSpec(
            "categories",
            "id",
            (
                _idx("userId"),
                _idx("color"),
            ),
        ),
        CollectionSpec(
            "settings",
            "userId",
            (_idx("notificationsEnabled"),),
        ),
        CollectionSpec(
            "exports",
            "id",
            (
                _idx("userId"),
                _idx("date"),
                _idx("format"),
            ),
        ),
        CollectionSpec(
            "distractions",
            "id",
            (
                _idx("taskId"),
                _idx("userId"),
                _idx("timestamp"),
            ),
        ),
    ]
)


# ---- seed data ----

DEFAULT_CATEGORIES: tuple[dict[str, Any], ...] = (
    {"key": "work", "name": "Work", "color": "#3b82f6", "icon": "💼"},
    {"key": "study", "name": "Study", "color": "#8b5cf6", "icon": "📚"},
    {"key": "exercise", "name": "Exercise", "color": "#10b981", "icon": "🏃"},
    {"key": "personal", "name": "Personal", "color": "#f59e0b", "icon": "✨"},
    {"key": "leisure", "name": "Leisure", "color": "#ec4899", "icon": "🎮"},
    {"key": "sleep", "name": "Rest", "color": "#6366f1", "icon": "😴"},
    {"key": "health", "name": "Health", "color": "#14b8a6", "icon": "❤️"},
    {"key": "social", "name": "Social", "color": "#f97316", "icon": "👥"},
)

AVATAR_COLORS: tuple[str, ...] = (
    "#3b82f6",
    "#8b5cf6",
    "#10b981",
    "#f59e0b",
    "#ec4899",
    "#6366f1",
    "#14b8a6",
    "#f97316",
    "#ef4444",
    "#84cc16",
)
