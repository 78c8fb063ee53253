# src/cronofocus/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

STORE_LOGGER_PREFIX = "cronofocus.store."


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - allow cronofocus logs
    - hold store logs to `store_level`: record writes log at DEBUG, so with
      CRONO_LOG_LEVEL=DEBUG they would otherwise flood the console (they still
      reach the file)
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise unless ERROR+
    """

    def __init__(self, store_level: int = logging.INFO) -> None:
        super().__init__()
        self.store_level = store_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith(STORE_LOGGER_PREFIX):
            return record.levelno >= self.store_level
        if name.startswith("cronofocus."):
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/cronofocus",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    store_console_level: int = logging.INFO,
) -> None:
    """
    Configure logging with:
    - Console handler: filtered; store logs below `store_console_level` are
      dropped (only matters when console_level is DEBUG)
    - File handler: full logs, store writes included

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "cronofocus.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter(store_console_level))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
