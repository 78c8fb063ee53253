# src/cronofocus/backup/snapshot.py

"""
Backup snapshots: one user's whole dataset as a self-describing JSON object.

    { meta: { exportDate, version, app },
      user, days: [...], tasks: [...], categories: [...], settings, distractions: [...] }

Import is additive: days and tasks get fresh ids and are rebound to the
target user; nothing already stored is updated.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from ..config import DEFAULT_APP_TAG
from ..core.clock import utc_now
from ..entities.exports import log_export
from ..errors import ImportFormatError, NotFound
from ..store.connection import Mode
from ..store.records import RecordEngine, RecordScope
from ..store.schema import SCHEMA_VERSION

logger = logging.getLogger(__name__)

_USER_COLLECTIONS = ("users", "days", "tasks", "categories", "settings", "distractions")


@dataclass(frozen=True, slots=True)
class ImportSummary:
    days: int
    reused_days: int
    tasks: int
    categories: int

    def to_dict(self) -> dict[str, int]:
        return {
            "days": self.days,
            "reusedDays": self.reused_days,
            "tasks": self.tasks,
            "categories": self.categories,
        }


async def export_all_data(
    records: RecordEngine, user_id: str, *, app_tag: str = DEFAULT_APP_TAG
) -> dict[str, Any]:
    """Read-only snapshot of everything the user owns (password hash stripped)."""

    def work(scope: RecordScope) -> dict[str, Any]:
        user = scope.get("users", user_id)
        if user is None:
            raise NotFound("users", user_id)
        user.pop("passwordHash", None)
        return {
            "meta": {
                "exportDate": scope.now(),
                "version": SCHEMA_VERSION,
                "app": app_tag,
            },
            "user": user,
            "days": scope.get_by_index("days", "userId", user_id),
            "tasks": scope.get_by_index("tasks", "userId", user_id),
            "categories": scope.get_by_index("categories", "userId", user_id),
            "settings": scope.get("settings", user_id),
            "distractions": scope.get_by_index("distractions", "userId", user_id),
        }

    # One read transaction, so the snapshot is consistent across collections.
    snapshot = await records.batch(_USER_COLLECTIONS, Mode.READ, work)
    logger.info(
        "Snapshot exported user=%s days=%d tasks=%d",
        user_id,
        len(snapshot["days"]),
        len(snapshot["tasks"]),
    )
    return snapshot


def _record_list(snapshot: dict[str, Any], key: str, *, required: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    items = snapshot.get(key) or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ImportFormatError(f"Snapshot field {key!r} must be a list of objects")
    for item in items:
        for name in required:
            if not item.get(name):
                raise ImportFormatError(f"Snapshot {key} entry without {name!r}")
    return items


def validate_snapshot(snapshot: Any, *, app_tag: str = DEFAULT_APP_TAG) -> None:
    if not isinstance(snapshot, dict):
        raise ImportFormatError("Snapshot must be a JSON object")
    meta = snapshot.get("meta")
    if not isinstance(meta, dict) or not meta.get("app"):
        raise ImportFormatError("Snapshot metadata is missing")
    if meta["app"] != app_tag:
        raise ImportFormatError(f"Snapshot belongs to {meta['app']!r}, expected {app_tag!r}")


def _day_for(scope: RecordScope, user_id: str, day: str) -> tuple[str, bool]:
    """Id of the user's Day on `day`, creating it if needed; second item tells if it was created."""
    rows = scope.get_by_index("days", "userDate", (user_id, day))
    if rows:
        return rows[0]["id"], False
    return scope.add("days", {"userId": user_id, "date": day, "notes": "", "goals": []})["id"], True


async def import_data(
    records: RecordEngine,
    snapshot: Any,
    target_user_id: str,
    *,
    app_tag: str = DEFAULT_APP_TAG,
) -> ImportSummary:
    """
    Add the snapshot's days, tasks and custom categories to `target_user_id`.

    No deduplication: importing twice duplicates tasks. A Day whose date the
    target already has is reused instead of inserted, since (userId, date)
    is unique. All inserts share one transaction.
    """
    validate_snapshot(snapshot, app_tag=app_tag)
    days = _record_list(snapshot, "days", required=("date",))
    tasks = _record_list(snapshot, "tasks", required=("date",))
    categories = _record_list(snapshot, "categories")

    def work(scope: RecordScope) -> ImportSummary:
        # snapshot day id -> (new day id, date)
        day_ids: dict[str, tuple[str, str]] = {}
        created = reused = 0

        for day in days:
            existing = scope.get_by_index("days", "userDate", (target_user_id, day["date"]))
            if existing:
                new_id = existing[0]["id"]
                reused += 1
            else:
                new_id = scope.add("days", {**day, "id": None, "userId": target_user_id})["id"]
                created += 1
            if day.get("id"):
                day_ids[day["id"]] = (new_id, day["date"])

        for task in tasks:
            mapped = day_ids.get(task["dayId"]) if task.get("dayId") else None
            if mapped is not None and mapped[1] == task["date"]:
                new_day_id = mapped[0]
            else:
                new_day_id, was_created = _day_for(scope, target_user_id, task["date"])
                created += int(was_created)
            scope.add(
                "tasks",
                {**task, "id": None, "userId": target_user_id, "dayId": new_day_id},
            )

        n_categories = 0
        for category in categories:
            if category.get("isDefault"):
                continue
            scope.add("categories", {**category, "id": None, "userId": target_user_id})
            n_categories += 1

        return ImportSummary(
            days=created,
            reused_days=reused,
            tasks=len(tasks),
            categories=n_categories,
        )

    summary = await records.batch(("days", "tasks", "categories"), Mode.READWRITE, work)
    logger.info("Snapshot imported into user=%s %s", target_user_id, summary.to_dict())
    return summary


# ---- files ----


def backup_filename(day: date | None = None) -> str:
    day = day or utc_now().date()
    return f"cronofocus_backup_{day.isoformat()}.json"


def dump_snapshot(snapshot: dict[str, Any], path: str | Path) -> int:
    """Write pretty JSON atomically; returns the size in bytes."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(snapshot, ensure_ascii=False, indent=2).encode("utf-8")

    tmp = path.with_suffix(".tmp")
    tmp.write_bytes(payload)
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Backups hold personal data; keep them private on disk.
        os.chmod(path, 0o600)
    return len(payload)


def load_snapshot(path: str | Path) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ImportFormatError(f"Cannot read backup {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ImportFormatError(f"Backup {path} is not a JSON object")
    return data


async def write_backup(
    records: RecordEngine,
    user_id: str,
    directory: str | Path,
    *,
    app_tag: str = DEFAULT_APP_TAG,
) -> Path:
    """Export the user's data to `directory` and record the export in the log."""
    snapshot = await export_all_data(records, user_id, app_tag=app_tag)
    path = Path(directory) / backup_filename(records.now_dt().date())
    size = dump_snapshot(snapshot, path)
    await log_export(records, user_id, "json", size=size, filename=path.name)
    return path
