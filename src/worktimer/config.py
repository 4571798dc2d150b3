# src/worktimer/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- No backend URL means offline mode (in-memory backend).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "WORKTIMER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


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
    data_dir: Path

    # ---- Backend ----
    api_base_url: str | None
    api_timeout_seconds: float

    # ---- Timers ----
    tick_interval_seconds: float
    reconcile_after_actions: bool
    single_active_per_task: bool

    # ---- Connectors ----
    console_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "worktimer").strip() or "worktimer"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/worktimer"))

        api_base_url = _env(_k("API_BASE_URL"), "").strip() or None
        api_timeout_seconds = max(0.1, _env_float(_k("API_TIMEOUT_SECONDS"), 10.0))

        tick_interval_seconds = max(0.05, _env_float(_k("TICK_INTERVAL_SECONDS"), 1.0))
        reconcile_after_actions = _env_bool(_k("RECONCILE_AFTER_ACTIONS"), True)
        single_active_per_task = _env_bool(_k("SINGLE_ACTIVE_PER_TASK"), False)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_base_url=api_base_url,
            api_timeout_seconds=api_timeout_seconds,
            tick_interval_seconds=tick_interval_seconds,
            reconcile_after_actions=reconcile_after_actions,
            single_active_per_task=single_active_per_task,
            console_enabled=console_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
