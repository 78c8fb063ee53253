# src/cronofocus/entities/preferences.py

from __future__ import annotations

import logging
from dataclasses import fields

from ..core.models import Category, CategoryPatch, SettingsPatch, UserSettings, apply_patch
from ..errors import NotFound, ValidationError
from ..store.records import RecordEngine

logger = logging.getLogger(__name__)

TIME_FORMATS = ("12h", "24h")


# ---- categories ----


async def get_categories_by_user(records: RecordEngine, user_id: str) -> list[Category]:
    rows = await records.get_by_index("categories", "userId", user_id)
    # defaults first, then custom ones by name
    cats = [Category.from_record(r) for r in rows]
    cats.sort(key=lambda c: (not c.is_default, c.name.casefold()))
    return cats


async def create_category(
    records: RecordEngine,
    user_id: str,
    *,
    name: str,
    color: str = "#6b7280",
    icon: str = "",
) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    category = Category(user_id=user_id, name=name, color=color, icon=icon, is_default=False)
    return Category.from_record(await records.add("categories", category.to_record()))


async def update_category(records: RecordEngine, category_id: str, patch: CategoryPatch) -> Category:
    rec = await records.get("categories", category_id)
    if rec is None:
        raise NotFound("categories", category_id)
    category = Category.from_record(rec)
    if category.is_default:
        raise ValidationError("Default categories cannot be edited")
    updated = apply_patch(category, patch)
    if not updated.name.strip():
        raise ValidationError("Category name is required")
    return Category.from_record(await records.update("categories", {**rec, **updated.to_record()}))


# ---- settings ----


_INT_FIELDS = ("time_interval", "day_start_hour", "day_end_hour", "reminder_minutes", "week_starts_on")
_BOOL_FIELDS = ("notifications_enabled", "sound_enabled")
_STR_FIELDS = ("theme", "date_format", "time_format")


def _check_types(s: UserSettings) -> None:
    # bool is an int subclass; it is not a valid hour or interval.
    for name in _INT_FIELDS:
        value = getattr(s, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
    for name in _BOOL_FIELDS:
        if not isinstance(getattr(s, name), bool):
            raise ValidationError(f"{name} must be true or false, got {getattr(s, name)!r}")
    for name in _STR_FIELDS:
        if not isinstance(getattr(s, name), str):
            raise ValidationError(f"{name} must be a string, got {getattr(s, name)!r}")
    if isinstance(s.sound_volume, bool) or not isinstance(s.sound_volume, (int, float)):
        raise ValidationError(f"sound_volume must be a number, got {s.sound_volume!r}")


def validate_settings(s: UserSettings) -> None:
    _check_types(s)
    if not (0 <= s.day_start_hour <= 23 and 0 <= s.day_end_hour <= 23):
        raise ValidationError("Day start/end hours must be within 0..23")
    if s.day_start_hour >= s.day_end_hour:
        raise ValidationError("Day must start before it ends")
    if s.time_interval <= 0 or 60 % s.time_interval != 0:
        raise ValidationError("timeInterval must divide an hour (e.g. 15, 30, 60)")
    if not 0.0 <= s.sound_volume <= 1.0:
        raise ValidationError("soundVolume must be within 0..1")
    if s.reminder_minutes < 0:
        raise ValidationError("reminderMinutes must not be negative")
    if not 0 <= s.week_starts_on <= 6:
        raise ValidationError("weekStartsOn must be 0 (Sunday) .. 6 (Saturday)")
    if s.time_format not in TIME_FORMATS:
        raise ValidationError(f"timeFormat must be one of {TIME_FORMATS}")


async def get_user_settings(records: RecordEngine, user_id: str) -> UserSettings:
    """The user's settings, or defaults if none are stored (never an error)."""
    rec = await records.get("settings", user_id)
    if rec is None:
        logger.debug("No settings stored for user=%s; using defaults", user_id)
        return UserSettings.defaults_for(user_id)
    return UserSettings.from_record(rec)


async def update_user_settings(
    records: RecordEngine, user_id: str, patch: SettingsPatch
) -> UserSettings:
    current = await get_user_settings(records, user_id)
    updated = apply_patch(current, patch)
    updated.user_id = user_id
    validate_settings(updated)
    return UserSettings.from_record(await records.update("settings", updated.to_record()))


async def reset_user_settings(records: RecordEngine, user_id: str) -> UserSettings:
    defaults = UserSettings.defaults_for(user_id)
    patch = SettingsPatch(**{f.name: getattr(defaults, f.name) for f in fields(SettingsPatch)})
    return await update_user_settings(records, user_id, patch)
