# src/cronofocus/store/records.py

"""
Collection-agnostic record engine.

Records are plain JSON-compatible dicts. RecordScope does the actual work
synchronously inside one transaction; RecordEngine wraps every operation in
its own scoped transaction and exposes it as a coroutine.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from ..core.clock import Clock, to_iso, utc_now
from ..errors import ConstraintViolation, ValidationError
from .connection import Mode, StoreManager, Transaction
from .schema import CollectionSpec, IndexSpec

logger = logging.getLogger(__name__)

Record = dict[str, Any]
T = TypeVar("T")


def _encode_doc(record: Record) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


def _decode_doc(raw: str) -> Record:
    val = json.loads(raw)
    return val if isinstance(val, dict) else {}


def _index_value(value: Any) -> Any:
    # Only scalars are indexable; anything else is left out of the index (NULL).
    if isinstance(value, (str, int, float)):
        return value
    return None


def _key_values(idx: IndexSpec, value: Any) -> tuple[Any, ...]:
    if idx.is_composite:
        if not isinstance(value, (tuple, list)) or len(value) != len(idx.key_path):
            raise ValueError(
                f"Index {idx.name!r} expects {len(idx.key_path)} values {idx.key_path}, got {value!r}"
            )
        return tuple(value)
    return (value,)


def _cols(fields: Sequence[str]) -> str:
    return ", ".join(f'"{f}"' for f in fields)


class RecordScope:
    """Synchronous record operations bound to one open transaction."""

    def __init__(self, tx: Transaction, clock: Clock = utc_now) -> None:
        self._tx = tx
        self._clock = clock

    def now(self) -> str:
        return to_iso(self._clock())

    def now_dt(self) -> datetime:
        return self._clock()

    # ---- writes ----

    def add(self, collection: str, record: Record) -> Record:
        spec = self._tx.require_write(collection)
        item = dict(record)

        if item.get(spec.key_path) in (None, ""):
            if spec.key_path != "id":
                raise ValidationError(f"{collection} records require {spec.key_path!r}")
            item["id"] = str(uuid.uuid4())

        ts = self.now()
        if not item.get("createdAt"):
            item["createdAt"] = ts
        if not item.get("updatedAt"):
            item["updatedAt"] = ts

        fields = [spec.key_path, *spec.indexed_fields, "doc"]
        placeholders = ", ".join("?" for _ in fields)
        self._write(
            spec,
            f'INSERT INTO "{spec.name}" ({_cols(fields)}) VALUES ({placeholders})',
            self._row_values(spec, item),
        )
        logger.debug("Record added collection=%s key=%s", collection, item[spec.key_path])
        return item

    def update(self, collection: str, record: Record) -> Record:
        """Upsert by key: a missing record is created."""
        spec = self._tx.require_write(collection)
        item = dict(record)
        if item.get(spec.key_path) in (None, ""):
            raise ValidationError(f"update on {collection} requires {spec.key_path!r}")
        ts = self.now()
        item["updatedAt"] = ts
        if not item.get("createdAt"):
            item["createdAt"] = ts

        fields = [spec.key_path, *spec.indexed_fields, "doc"]
        placeholders = ", ".join("?" for _ in fields)
        assignments = ", ".join(f'"{f}" = excluded."{f}"' for f in fields[1:])
        self._write(
            spec,
            f'INSERT INTO "{spec.name}" ({_cols(fields)}) VALUES ({placeholders}) '
            f'ON CONFLICT("{spec.key_path}") DO UPDATE SET {assignments}',
            self._row_values(spec, item),
        )
        logger.debug("Record updated collection=%s key=%s", collection, item[spec.key_path])
        return item

    def remove(self, collection: str, key: Any) -> None:
        spec = self._tx.require_write(collection)
        self._tx.execute(f'DELETE FROM "{spec.name}" WHERE "{spec.key_path}" = ?', (key,))

    def clear(self, collection: str) -> None:
        spec = self._tx.require_write(collection)
        cur = self._tx.execute(f'DELETE FROM "{spec.name}"')
        logger.info("Collection cleared collection=%s removed=%s", collection, cur.rowcount)

    # ---- reads ----

    def get(self, collection: str, key: Any) -> Record | None:
        spec = self._tx.spec(collection)
        row = self._tx.execute(
            f'SELECT doc FROM "{spec.name}" WHERE "{spec.key_path}" = ?', (key,)
        ).fetchone()
        return _decode_doc(row["doc"]) if row else None

    def get_all(self, collection: str) -> list[Record]:
        spec = self._tx.spec(collection)
        rows = self._tx.execute(f'SELECT doc FROM "{spec.name}"').fetchall()
        return [_decode_doc(r["doc"]) for r in rows]

    def get_by_index(self, collection: str, index: str, value: Any) -> list[Record]:
        spec = self._tx.spec(collection)
        idx = spec.index(index)
        values = _key_values(idx, value)
        where = " AND ".join(f'"{f}" = ?' for f in idx.key_path)
        return self._select(spec, idx, where, values)

    def get_by_index_range(self, collection: str, index: str, lower: Any, upper: Any) -> list[Record]:
        """Inclusive on both bounds."""
        spec = self._tx.spec(collection)
        idx = spec.index(index)
        lo = _key_values(idx, lower)
        hi = _key_values(idx, upper)
        if idx.is_composite:
            ph = ", ".join("?" for _ in idx.key_path)
            cols = f"({_cols(idx.key_path)})"
            where = f"{cols} >= ({ph}) AND {cols} <= ({ph})"
        else:
            col = f'"{idx.key_path[0]}"'
            where = f"{col} >= ? AND {col} <= ?"
        return self._select(spec, idx, where, (*lo, *hi))

    def count(self, collection: str) -> int:
        spec = self._tx.spec(collection)
        (n,) = self._tx.execute(f'SELECT COUNT(*) FROM "{spec.name}"').fetchone()
        return int(n)

    # ---- low-level helpers ----

    def _select(
        self,
        spec: CollectionSpec,
        idx: IndexSpec,
        where: str,
        params: Iterable[Any],
    ) -> list[Record]:
        order = _cols([*idx.key_path, spec.key_path])
        rows = self._tx.execute(
            f'SELECT doc FROM "{spec.name}" WHERE {where} ORDER BY {order}',
            params,
        ).fetchall()
        return [_decode_doc(r["doc"]) for r in rows]

    @staticmethod
    def _row_values(spec: CollectionSpec, item: Record) -> list[Any]:
        return [
            str(item[spec.key_path]),
            *(_index_value(item.get(f)) for f in spec.indexed_fields),
            _encode_doc(item),
        ]

    def _write(self, spec: CollectionSpec, sql: str, params: Iterable[Any]) -> None:
        try:
            self._tx.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolation(f"{spec.name}: {exc}", collection=spec.name) from exc


class RecordEngine:
    """
    Async facade over RecordScope.

    Each call runs in its own transaction scoped to exactly one collection;
    use batch() when several writes must land atomically.
    """

    def __init__(self, manager: StoreManager, *, clock: Clock = utc_now) -> None:
        self._manager = manager
        self._clock = clock

    def now(self) -> str:
        return to_iso(self._clock())

    def now_dt(self) -> datetime:
        return self._clock()

    async def batch(
        self,
        collections: str | Iterable[str],
        mode: Mode | str,
        work: Callable[[RecordScope], T],
    ) -> T:
        return await self._manager.run(collections, mode, lambda tx: work(RecordScope(tx, self._clock)))

    async def add(self, collection: str, record: Record) -> Record:
        return await self.batch(collection, Mode.READWRITE, lambda s: s.add(collection, record))

    async def get(self, collection: str, key: Any) -> Record | None:
        return await self.batch(collection, Mode.READ, lambda s: s.get(collection, key))

    async def get_all(self, collection: str) -> list[Record]:
        return await self.batch(collection, Mode.READ, lambda s: s.get_all(collection))

    async def update(self, collection: str, record: Record) -> Record:
        return await self.batch(collection, Mode.READWRITE, lambda s: s.update(collection, record))

    async def remove(self, collection: str, key: Any) -> None:
        await self.batch(collection, Mode.READWRITE, lambda s: s.remove(collection, key))

    async def get_by_index(self, collection: str, index: str, value: Any) -> list[Record]:
        return await self.batch(
            collection, Mode.READ, lambda s: s.get_by_index(collection, index, value)
        )

    async def get_by_index_range(
        self, collection: str, index: str, lower: Any, upper: Any
    ) -> list[Record]:
        return await self.batch(
            collection,
            Mode.READ,
            lambda s: s.get_by_index_range(collection, index, lower, upper),
        )

    async def clear(self, collection: str) -> None:
        await self.batch(collection, Mode.READWRITE, lambda s: s.clear(collection))

    async def count(self, collection: str) -> int:
        return await self.batch(collection, Mode.READ, lambda s: s.count(collection))
