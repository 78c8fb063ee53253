# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep local data and backups out of git (.local/ by default).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "CRONO_APP_NAME": "App display name (default: cronofocus).",
    "CRONO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "CRONO_DATA_DIR": "Local data directory, also holds cronofocus.log (default: .local/cronofocus).",
    "CRONO_DB_PATH": "SQLite store path (default: <data_dir>/cronofocus.sqlite3).",
    "CRONO_BACKUP_DIR": "Where `cronofocus export` writes backups (default: <data_dir>/backups).",
    # Backup format
    "CRONO_APP_TAG": "meta.app tag written to and required from backups (default: CronoFocus).",
    # Validation
    "CRONO_MIN_USERNAME_LENGTH": "Shortest accepted username at registration (default: 3).",
}
