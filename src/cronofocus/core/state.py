# src/cronofocus/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from ..store.connection import StoreManager
from ..store.records import RecordEngine


@dataclass
class AppState:
    """
    Everything a caller needs, constructed once and passed by reference.

    There is no module-level connection: entity operations receive
    `state.records` explicitly.
    """

    settings: Settings
    store: StoreManager
    records: RecordEngine

    def close(self) -> None:
        self.store.close()
