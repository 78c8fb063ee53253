# src/cronofocus/entities/users.py

from __future__ import annotations

import logging
import random
import uuid
from typing import Any

from ..core.models import Category, User, UserPatch, UserSettings, apply_patch, patch_changes
from ..core.ports import PasswordVerifier
from ..errors import ConstraintViolation, NotFound, ValidationError
from ..store.connection import Mode
from ..store.records import RecordEngine
from ..store.schema import AVATAR_COLORS, DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3


def normalize_username(raw: str) -> str:
    return (raw or "").strip().casefold()


async def create_user(
    records: RecordEngine,
    *,
    username: str,
    display_name: str = "",
    email: str = "",
    avatar_color: str | None = None,
    password_hash: str | None = None,
    encryption_enabled: bool = False,
    min_username_length: int = MIN_USERNAME_LENGTH,
) -> User:
    """
    Register a local profile.

    Settings, the default categories and the user row are written in one
    transaction: either all three land or none does.
    """
    name = normalize_username(username)
    if len(name) < min_username_length:
        raise ValidationError(f"Username must be at least {min_username_length} characters")

    if await get_user_by_username(records, name) is not None:
        raise ConstraintViolation("username already in use", collection="users")

    now = records.now()
    user = User(
        id=str(uuid.uuid4()),
        username=name,
        display_name=(display_name or username).strip(),
        email=(email or "").strip(),
        avatar_color=avatar_color or random.choice(AVATAR_COLORS),
        password_hash=password_hash,
        has_password=bool(password_hash),
        encryption_enabled=bool(encryption_enabled),
        last_login=now,
        created_at=now,
    )

    def work(scope) -> dict[str, Any]:
        scope.add("settings", UserSettings.defaults_for(user.id).to_record())
        for seed in DEFAULT_CATEGORIES:
            category = Category(
                user_id=user.id,
                key=seed["key"],
                name=seed["name"],
                color=seed["color"],
                icon=seed["icon"],
                is_default=True,
            )
            scope.add("categories", category.to_record())
        return scope.add("users", user.to_record())

    try:
        rec = await records.batch(("settings", "categories", "users"), Mode.READWRITE, work)
    except ConstraintViolation as exc:
        if exc.collection == "users":
            raise ConstraintViolation("username already in use", collection="users") from exc
        raise

    logger.info("User created id=%s username=%s", user.id, name)
    return User.from_record(rec)


async def get_user(records: RecordEngine, user_id: str) -> User | None:
    rec = await records.get("users", user_id)
    return User.from_record(rec) if rec else None


async def get_user_by_username(records: RecordEngine, username: str) -> User | None:
    name = normalize_username(username)
    if not name:
        return None
    rows = await records.get_by_index("users", "username", name)
    return User.from_record(rows[0]) if rows else None


async def _require_user(records: RecordEngine, user_id: str) -> User:
    user = await get_user(records, user_id)
    if user is None:
        raise NotFound("users", user_id)
    return user


async def update_last_login(records: RecordEngine, user_id: str) -> User:
    user = await _require_user(records, user_id)
    user.last_login = records.now()
    return User.from_record(await records.update("users", user.to_record()))


async def update_profile(records: RecordEngine, user_id: str, patch: UserPatch) -> User:
    user = await _require_user(records, user_id)
    updated = apply_patch(user, patch)
    if "password_hash" in patch_changes(patch):
        updated.has_password = bool(updated.password_hash)
    return User.from_record(await records.update("users", updated.to_record()))


async def list_profiles(records: RecordEngine) -> list[dict[str, Any]]:
    """Public view of every local profile (never includes the password hash)."""
    users = [User.from_record(r) for r in await records.get_all("users")]
    users.sort(key=lambda u: u.username)
    return [
        {
            "id": u.id,
            "username": u.username,
            "displayName": u.display_name,
            "avatarColor": u.avatar_color,
            "hasPassword": u.has_password,
            "lastLogin": u.last_login,
        }
        for u in users
    ]


async def login(
    records: RecordEngine,
    username: str,
    password: str | None,
    verify: PasswordVerifier,
) -> User:
    user = await get_user_by_username(records, username)
    if user is None:
        raise NotFound("users", normalize_username(username))

    if user.has_password:
        if not password:
            raise ValidationError("Password required")
        if not user.password_hash or not verify(password, user.password_hash):
            raise ValidationError("Incorrect password")

    logger.info("Login user=%s", user.username)
    return await update_last_login(records, user.id)
