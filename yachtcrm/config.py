"""
Settings for the broker CRM core.

Values come from the process environment, then a local ``.env`` file, then
the defaults below.  Components receive an :class:`AppConfig` through their
constructors; :func:`get_config` exists for the few entry points without one.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Every tunable of the CRM core, one attribute per environment variable."""

    # --- Supabase (identity + blob storage) ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")

    # Local verification of Supabase access tokens.  When the secret is
    # empty, sessions are validated remotely via ``auth.get_user``.
    SUPABASE_JWT_SECRET: SecretStr = SecretStr("")
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # --- Relational store ---
    SQLITE_PATH: str = "yachtcrm.db"
    STORE_TIMEOUT_S: float = 5.0

    # --- Image uploads ---
    STORAGE_BUCKET: str = "boat-images"
    UPLOAD_DIR: str = "public/uploads/boats"
    UPLOAD_URL_PREFIX: str = "/uploads/boats"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10 MB
    UPLOAD_WORKERS: int = 4

    # --- Reminders ---
    REMINDER_PRIORITY_LIMIT: int = 5
    # IANA zone name used for calendar-day comparisons; empty = system local.
    TIMEZONE: str = ""

    # --- Logging ---
    LOG_FILE: str = "yachtcrm.log"
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Warn at startup about settings that leave the CRM unusable.

        A missing ``.env`` is not an error, and without Supabase settings
        every request is rejected; both are worth a line in the log.
        """
        _log = logging.getLogger("yachtcrm.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL and not self.SUPABASE_JWT_SECRET.get_secret_value():
            _log.warning(
                "Neither SUPABASE_URL nor SUPABASE_JWT_SECRET is set; "
                "every session will be rejected."
            )

        return self

    @property
    def log_level(self) -> int:
        """Numeric ``logging`` level for :attr:`LOG_LEVEL` (INFO if unknown)."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


# Process-wide instance for entry points that are not handed a config.
_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """The shared :class:`AppConfig`, built on first use.

    Built under a lock; later calls return it without locking.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next ``get_config()`` re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
