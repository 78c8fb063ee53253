# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from cronofocus.core.state import AppState
from cronofocus.store.connection import StoreManager
from cronofocus.store.records import RecordEngine

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="cronofocus-test",
        log_level="DEBUG",
        data_dir=data_dir,
        db_path=data_dir / "cronofocus.sqlite3",
        backup_dir=data_dir / "backups",
        app_tag="CronoFocus",
        min_username_length=3,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(settings: SimpleNamespace) -> Iterator[StoreManager]:
    """
    Real SQLite store per test.

    It opens lazily on the first awaited call, so the fixture itself stays sync.
    """
    manager = StoreManager(settings.db_path)
    yield manager
    manager.close()


@pytest.fixture()
def records(store: StoreManager, clock: FakeClock) -> RecordEngine:
    return RecordEngine(store, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, store: StoreManager, records: RecordEngine) -> AppState:
    return AppState(settings=settings, store=store, records=records)
