# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is contacted at import time; an empty API URL means the
  in-process demo backend is used.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKSYNC"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


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
    tasks_db_path: Path

    # ---- Remote server ----
    api_base_url: str
    http_connect_timeout: float
    http_read_timeout: float

    # ---- Connectivity ----
    start_online: bool
    probe_enabled: bool
    probe_interval_seconds: float

    # ---- Connectors ----
    console_enabled: bool

    @property
    def uses_demo_backend(self) -> bool:
        return not self.api_base_url.strip()

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasksync"))

        return Settings(
            app_name=_env(_k("APP_NAME"), "tasksync") or "tasksync",
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=data_dir,
            tasks_db_path=_env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3"),
            api_base_url=_env(_k("API_BASE_URL"), "").strip(),
            http_connect_timeout=_env_float(_k("HTTP_CONNECT_TIMEOUT_SECONDS"), 5.0),
            http_read_timeout=_env_float(_k("HTTP_READ_TIMEOUT_SECONDS"), 15.0),
            start_online=_env_bool(_k("START_ONLINE"), True),
            probe_enabled=_env_bool(_k("PROBE_ENABLED"), False),
            probe_interval_seconds=_env_float(_k("PROBE_INTERVAL_SECONDS"), 15.0),
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore
except ImportError:
    _config_local = None

if _config_local is not None:
    for _name, _attr in (
        ("CONSOLE_ENABLED", "console_enabled"),
        ("START_ONLINE", "start_online"),
        ("PROBE_ENABLED", "probe_enabled"),
    ):
        if hasattr(_config_local, _name):
            object.__setattr__(SETTINGS, _attr, bool(getattr(_config_local, _name)))  # type: ignore[misc]


def get_settings() -> Settings:
    return SETTINGS
