# tests/test_preferences.py

from __future__ import annotations

import pytest

from cronofocus.core.models import CategoryPatch, SettingsPatch, UserSettings
from cronofocus.entities.exports import get_export_history, log_export
from cronofocus.entities.preferences import (
    create_category,
    get_categories_by_user,
    get_user_settings,
    reset_user_settings,
    update_category,
    update_user_settings,
)
from cronofocus.entities.users import create_user
from cronofocus.errors import NotFound, ValidationError


@pytest.mark.asyncio
async def test_missing_settings_fall_back_to_defaults(records) -> None:
    prefs = await get_user_settings(records, "ghost")

    assert prefs == UserSettings.defaults_for("ghost")
    assert (prefs.time_interval, prefs.day_start_hour, prefs.day_end_hour) == (30, 6, 23)
    assert prefs.sound_volume == 0.3
    assert await records.count("settings") == 0


@pytest.mark.asyncio
async def test_update_and_reset_settings(records) -> None:
    updated = await update_user_settings(
        records, "u1", SettingsPatch(time_interval=15, theme="light", week_starts_on=1)
    )
    assert (updated.time_interval, updated.theme, updated.week_starts_on) == (15, "light", 1)
    assert (await get_user_settings(records, "u1")).theme == "light"

    reset = await reset_user_settings(records, "u1")
    assert reset.time_interval == 30
    assert reset.theme == "dark"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "patch",
    [
        SettingsPatch(day_start_hour=22, day_end_hour=8),
        SettingsPatch(day_end_hour=24),
        SettingsPatch(time_interval=7),
        SettingsPatch(sound_volume=1.5),
        SettingsPatch(reminder_minutes=-1),
        SettingsPatch(week_starts_on=7),
        SettingsPatch(time_format="am/pm"),
        SettingsPatch(day_start_hour="7"),
        SettingsPatch(time_interval=True),
        SettingsPatch(sound_volume="x"),
        SettingsPatch(sound_enabled="yes"),
        SettingsPatch(theme=None),
    ],
)
async def test_invalid_settings_rejected(records, patch) -> None:
    with pytest.raises(ValidationError):
        await update_user_settings(records, "u1", patch)
    assert await records.count("settings") == 0


@pytest.mark.asyncio
async def test_categories_defaults_are_read_only(records) -> None:
    user = await create_user(records, username="alice")
    custom = await create_category(records, user.id, name="Reading", color="#123456")
    assert custom.is_default is False

    cats = await get_categories_by_user(records, user.id)
    assert cats[-1].id == custom.id
    assert all(c.is_default for c in cats[:-1])

    with pytest.raises(ValidationError):
        await update_category(records, cats[0].id, CategoryPatch(name="Job"))

    renamed = await update_category(records, custom.id, CategoryPatch(name="Books", icon="📖"))
    assert (renamed.name, renamed.color, renamed.icon) == ("Books", "#123456", "📖")

    with pytest.raises(ValidationError):
        await update_category(records, custom.id, CategoryPatch(name="  "))
    with pytest.raises(NotFound):
        await update_category(records, "missing", CategoryPatch(name="x"))
    with pytest.raises(ValidationError):
        await create_category(records, user.id, name="")


@pytest.mark.asyncio
async def test_export_log_is_newest_first(records, clock) -> None:
    await log_export(records, "u1", "json", size=10, filename="a.json")
    clock.advance(days=1)
    await log_export(records, "u1", "CSV", size=20, date_range={"start": "2024-01-01", "end": "2024-01-07"})
    await log_export(records, "u2", "pdf")

    history = await get_export_history(records, "u1")
    assert [e.format for e in history] == ["csv", "json"]
    assert history[0].date_range == {"start": "2024-01-01", "end": "2024-01-07"}

    with pytest.raises(ValidationError):
        await log_export(records, "u1", "docx")
