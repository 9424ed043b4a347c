# src/school_agenda/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (remote backups are optional).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "AGENDA"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path
    documents_dir: Path
    background_backup_dir: Path

    # ---- Calendar ----
    accent_color: str

    # ---- Notifications ----
    notifications_enabled: bool
    notification_delay_seconds: float

    # ---- Backups ----
    backup_file_prefix: str
    background_backup_enabled: bool
    background_backup_interval_seconds: float
    restore_poll_interval_seconds: float

    # ---- Remote object storage (Supabase-compatible) ----
    remote_url: str | None
    remote_api_key: str | None
    remote_bucket: str
    remote_prefix: str
    remote_timeout_seconds: float

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url and self.remote_api_key)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "agenda-escolar")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/agenda"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")
        documents_dir = _env_path(_k("DOCUMENTS_DIR"), data_dir / "documents")
        background_backup_dir = _env_path(_k("BACKGROUND_BACKUP_DIR"), documents_dir / "backups")

        accent_color = _env(_k("ACCENT_COLOR"), "#6c757d")

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        notification_delay_seconds = _env_float(_k("NOTIFICATION_DELAY_SECONDS"), 2.0)

        backup_file_prefix = _env(_k("BACKUP_FILE_PREFIX"), "respaldo-actividades")
        background_backup_enabled = _env_bool(_k("BACKGROUND_BACKUP_ENABLED"), True)
        background_backup_interval_seconds = _env_float(_k("BACKGROUND_BACKUP_INTERVAL_SECONDS"), 3600.0)
        # 0 disables the timer; restores are announced on the event bus anyway.
        restore_poll_interval_seconds = _env_float(_k("RESTORE_POLL_INTERVAL_SECONDS"), 0.0)

        remote_url = (_env(_k("REMOTE_URL"), "").strip().rstrip("/")) or None
        remote_api_key = _env(_k("REMOTE_API_KEY"), "").strip() or None
        remote_bucket = _env(_k("REMOTE_BUCKET"), "backups")
        remote_prefix = _env(_k("REMOTE_PREFIX"), "backups").strip("/")
        remote_timeout_seconds = _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 15.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_db_path=store_db_path,
            documents_dir=documents_dir,
            background_backup_dir=background_backup_dir,
            accent_color=accent_color,
            notifications_enabled=notifications_enabled,
            notification_delay_seconds=notification_delay_seconds,
            backup_file_prefix=backup_file_prefix,
            background_backup_enabled=background_backup_enabled,
            background_backup_interval_seconds=background_backup_interval_seconds,
            restore_poll_interval_seconds=restore_poll_interval_seconds,
            remote_url=remote_url,
            remote_api_key=remote_api_key,
            remote_bucket=remote_bucket,
            remote_prefix=remote_prefix,
            remote_timeout_seconds=remote_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
