# src/cronofocus/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs one subcommand against the
local store and prints its result as JSON on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from ..backup.snapshot import import_data, load_snapshot, write_backup
from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..entities.preferences import get_user_settings
from ..entities.users import create_user, get_user_by_username, list_profiles, normalize_username
from ..errors import CronoFocusError, NotFound
from ..logging_setup import setup_logging
from ..stats.engine import get_day_stats, get_week_stats

logger = logging.getLogger(__name__)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _user_id(state: AppState, username: str) -> str:
    user = await get_user_by_username(state.records, username)
    if user is None:
        raise NotFound("users", normalize_username(username))
    return user.id


def week_start_for(day: date, week_starts_on: int) -> date:
    """First day of the week containing `day`; `week_starts_on` counts from Sunday = 0."""
    sunday_based = (day.weekday() + 1) % 7
    return day - timedelta(days=(sunday_based - week_starts_on) % 7)


# ---- subcommands ----


async def cmd_init(state: AppState, _args: argparse.Namespace) -> Any:
    await state.store.open()
    return {
        "db": str(state.store.db_path),
        "collections": state.store.registry.names(),
        "version": state.store.registry.version,
    }


async def cmd_register(state: AppState, args: argparse.Namespace) -> Any:
    user = await create_user(
        state.records,
        username=args.username,
        display_name=args.display_name or "",
        email=args.email or "",
        min_username_length=state.settings.min_username_length,
    )
    return {"id": user.id, "username": user.username, "displayName": user.display_name}


async def cmd_profiles(state: AppState, _args: argparse.Namespace) -> Any:
    return await list_profiles(state.records)


async def cmd_day_stats(state: AppState, args: argparse.Namespace) -> Any:
    user_id = await _user_id(state, args.username)
    day = args.date or state.records.now_dt().date()
    return (await get_day_stats(state.records, user_id, day)).to_dict()


async def cmd_week_stats(state: AppState, args: argparse.Namespace) -> Any:
    user_id = await _user_id(state, args.username)
    start = args.week_start
    if start is None:
        prefs = await get_user_settings(state.records, user_id)
        start = week_start_for(state.records.now_dt().date(), prefs.week_starts_on)
    return (await get_week_stats(state.records, user_id, start)).to_dict()


async def cmd_export(state: AppState, args: argparse.Namespace) -> Any:
    user_id = await _user_id(state, args.username)
    out_dir = args.out or state.settings.backup_dir
    path = await write_backup(state.records, user_id, out_dir, app_tag=state.settings.app_tag)
    return {"file": str(path)}


async def cmd_import(state: AppState, args: argparse.Namespace) -> Any:
    user_id = await _user_id(state, args.username)
    snapshot = load_snapshot(args.file)
    summary = await import_data(state.records, snapshot, user_id, app_tag=state.settings.app_tag)
    return summary.to_dict()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cronofocus", description="Local time-blocking store.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Create the local store if needed.")
    p.set_defaults(handler=cmd_init)

    p = sub.add_parser("register", help="Create a local profile.")
    p.add_argument("username")
    p.add_argument("--display-name", default="")
    p.add_argument("--email", default="")
    p.set_defaults(handler=cmd_register)

    p = sub.add_parser("profiles", help="List local profiles.")
    p.set_defaults(handler=cmd_profiles)

    p = sub.add_parser("day-stats", help="Statistics for one day.")
    p.add_argument("username")
    p.add_argument("--date", type=date.fromisoformat, default=None, help="YYYY-MM-DD (default: today)")
    p.set_defaults(handler=cmd_day_stats)

    p = sub.add_parser("week-stats", help="Statistics for a 7-day window.")
    p.add_argument("username")
    p.add_argument(
        "--week-start",
        type=date.fromisoformat,
        default=None,
        help="YYYY-MM-DD (default: start of the current week per user settings)",
    )
    p.set_defaults(handler=cmd_week_stats)

    p = sub.add_parser("export", help="Write a JSON backup of a profile.")
    p.add_argument("username")
    p.add_argument("--out", type=Path, default=None, help="Target directory (default: backup dir)")
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("import", help="Add a JSON backup's data to a profile.")
    p.add_argument("username")
    p.add_argument("file", type=Path)
    p.set_defaults(handler=cmd_import)

    return parser


async def _run(state: AppState, args: argparse.Namespace) -> Any:
    return await args.handler(state, args)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # choose console log level from settings.log_level
    console_level = getattr(logging, settings.log_level, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    try:
        result = asyncio.run(_run(state, args))
    except CronoFocusError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        state.close()

    _print_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
