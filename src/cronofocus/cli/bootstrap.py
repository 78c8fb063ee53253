# src/cronofocus/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store manager and record engine into AppState.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.clock import Clock, utc_now
from ..core.state import AppState
from ..store.connection import StoreManager
from ..store.records import RecordEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.backup_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None, clock: Clock = utc_now) -> AppState:
    """
    Create AppState from the provided settings.

    Nothing is opened here: the store structures itself on first use.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = StoreManager(settings.db_path)
    logger.debug("State wired db=%s", settings.db_path)
    return AppState(
        settings=settings,
        store=store,
        records=RecordEngine(store, clock=clock),
    )
