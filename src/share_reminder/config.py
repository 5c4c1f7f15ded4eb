# src/share_reminder/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Every tunable of the reminder lifecycle (dedup window, retry policy, ...) lives here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "SHARE_REMINDER"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


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

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    jobs_db_path: Path

    # ---- Materializer ----
    dedup_window_seconds: float
    default_category_id: str
    min_confidence: float

    # ---- Reminders ----
    default_reminder_hour: int
    snooze_minutes: int

    # ---- Job runner ----
    runner_interval_seconds: float
    retry_delay_seconds: float
    max_delivery_attempts: int

    # ---- Notifications ----
    notify_webhook_url: str | None
    notify_timeout_seconds: float
    notifications_enabled: bool
    # "HH:MM" local time; start later than end wraps over midnight.
    quiet_hours_start: str | None
    quiet_hours_end: str | None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "share-reminder")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/share_reminder"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        jobs_db_path = _env_path(_k("JOBS_DB_PATH"), data_dir / "jobs.sqlite3")

        # Clamp to a sane range: hours 0..23, non-negative windows.
        default_reminder_hour = min(23, max(0, _env_int(_k("DEFAULT_REMINDER_HOUR"), 9)))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            jobs_db_path=jobs_db_path,
            dedup_window_seconds=max(0.0, _env_float(_k("DEDUP_WINDOW_SECONDS"), 300.0)),
            default_category_id=_env(_k("DEFAULT_CATEGORY_ID"), "general").strip() or "general",
            min_confidence=min(1.0, max(0.0, _env_float(_k("MIN_CONFIDENCE"), 0.0))),
            default_reminder_hour=default_reminder_hour,
            snooze_minutes=max(1, _env_int(_k("SNOOZE_MINUTES"), 10)),
            runner_interval_seconds=max(0.5, _env_float(_k("RUNNER_INTERVAL_SECONDS"), 15.0)),
            retry_delay_seconds=max(1.0, _env_float(_k("RETRY_DELAY_SECONDS"), 60.0)),
            max_delivery_attempts=max(1, _env_int(_k("MAX_DELIVERY_ATTEMPTS"), 5)),
            notify_webhook_url=_env_optional(_k("NOTIFY_WEBHOOK_URL")),
            notify_timeout_seconds=max(0.5, _env_float(_k("NOTIFY_TIMEOUT_SECONDS"), 10.0)),
            notifications_enabled=_env_bool(_k("NOTIFICATIONS_ENABLED"), True),
            quiet_hours_start=_env_optional(_k("QUIET_HOURS_START")),
            quiet_hours_end=_env_optional(_k("QUIET_HOURS_END")),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
