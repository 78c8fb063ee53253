# src/cronofocus/store/connection.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable
from enum import StrEnum
from pathlib import Path
from typing import TypeVar

from ..errors import ScopeError, StoreUnavailable
from .schema import SCHEMA, CollectionSpec, SchemaRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Mode(StrEnum):
    READ = "read"
    READWRITE = "readwrite"


class Transaction:
    """
    One SQLite transaction scoped to a fixed set of collections.

    Only valid inside the `work` callable handed to StoreManager.run().
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        registry: SchemaRegistry,
        collections: Iterable[str],
        mode: Mode,
    ) -> None:
        self._conn = conn
        self._registry = registry
        self.collections = frozenset(collections)
        self.mode = mode
        self._active = True

    def spec(self, name: str) -> CollectionSpec:
        spec = self._registry.get(name)
        if name not in self.collections:
            raise ScopeError(
                f"Collection {name!r} is outside this transaction "
                f"(scope: {', '.join(sorted(self.collections))})"
            )
        return spec

    def require_write(self, name: str) -> CollectionSpec:
        spec = self.spec(name)
        if self.mode is not Mode.READWRITE:
            raise ScopeError(f"Write to {name!r} inside a read-only transaction")
        return spec

    def execute(self, sql: str, params: Iterable[object] = ()) -> sqlite3.Cursor:
        if not self._active:
            raise ScopeError("Transaction already finished")
        return self._conn.execute(sql, tuple(params))

    def _finish(self) -> None:
        self._active = False


class StoreManager:
    """
    Owns the single SQLite handle of the app.

    - open() is lazy and idempotent: the first call structures the store,
      later calls hand back the live connection without any DDL.
    - run() executes synchronous work in a worker thread inside one
      transaction; the connection is shared, so calls are serialized.
    """

    def __init__(self, db_path: str | Path, registry: SchemaRegistry = SCHEMA) -> None:
        self._db_path = Path(db_path)
        self._registry = registry
        self._conn: sqlite3.Connection | None = None
        self._open_lock = asyncio.Lock()
        self._conn_lock = threading.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        async with self._open_lock:
            if self._conn is None:
                self._conn = await asyncio.to_thread(self._connect)
        return self._conn

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("StoreManager closed db=%s", self._db_path)

    async def run(
        self,
        collections: str | Iterable[str],
        mode: Mode | str,
        work: Callable[[Transaction], T],
    ) -> T:
        names = [collections] if isinstance(collections, str) else list(collections)
        # Unknown names fail before the store is touched.
        for name in names:
            self._registry.get(name)
        tx_mode = Mode(mode)

        conn = await self.open()
        return await asyncio.to_thread(self._run_sync, conn, names, tx_mode, work)

    # ---- low-level helpers ----

    def _run_sync(
        self,
        conn: sqlite3.Connection,
        names: list[str],
        mode: Mode,
        work: Callable[[Transaction], T],
    ) -> T:
        tx = Transaction(conn, self._registry, names, mode)
        with self._conn_lock:
            conn.execute("BEGIN IMMEDIATE" if mode is Mode.READWRITE else "BEGIN")
            try:
                result = work(tx)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            finally:
                tx._finish()
            conn.execute("COMMIT")
            return result

    def _connect(self) -> sqlite3.Connection:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=30.0,
                check_same_thread=False,
                isolation_level=None,
            )
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(f"Cannot open store at {self._db_path}: {exc}") from exc

        try:
            conn.row_factory = sqlite3.Row
            self._configure_conn(conn)
            self._ensure_schema(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise StoreUnavailable(f"Store at {self._db_path} is unusable: {exc}") from exc

        logger.info("StoreManager ready db=%s version=%s", self._db_path, self._registry.version)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        # Fails on a file that is not a database; that is exactly what we want to surface.
        conn.execute("PRAGMA user_version").fetchone()
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        (version,) = conn.execute("PRAGMA user_version").fetchone()
        existing = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }

        conn.execute("BEGIN IMMEDIATE")
        try:
            for spec in self._registry:
                if spec.name not in existing:
                    logger.info("Schema: creating collection %s (key=%s)", spec.name, spec.key_path)
                conn.execute(spec.create_table_sql())
                for sql in spec.create_index_sql():
                    conn.execute(sql)
            if int(version) < self._registry.version:
                conn.execute(f"PRAGMA user_version = {int(self._registry.version)}")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
