# src/cronofocus/entities/exports.py

"""Append-only log of exports done by a user."""

from __future__ import annotations

import logging
from typing import Any

from ..core.models import ExportRecord
from ..errors import ValidationError
from ..store.records import RecordEngine

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv", "png", "pdf")


async def log_export(
    records: RecordEngine,
    user_id: str,
    fmt: str,
    *,
    size: int | None = None,
    date_range: Any = None,
    filename: str | None = None,
) -> ExportRecord:
    fmt = (fmt or "").strip().lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unknown export format {fmt!r}")
    entry = ExportRecord(
        user_id=user_id,
        format=fmt,
        date=records.now(),
        size=size,
        date_range=date_range,
        filename=filename,
    )
    rec = await records.add("exports", entry.to_record())
    logger.info("Export logged user=%s format=%s file=%s size=%s", user_id, fmt, filename, size)
    return ExportRecord.from_record(rec)


async def get_export_history(records: RecordEngine, user_id: str) -> list[ExportRecord]:
    """Newest first."""
    rows = await records.get_by_index("exports", "userId", user_id)
    out = [ExportRecord.from_record(r) for r in rows]
    out.sort(key=lambda e: e.date, reverse=True)
    return out
