"""
Application Configuration.

Pydantic Settings model for the SafeQR admin backend.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "safeqr_admin.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    # --- Suspension lifecycle ---
    AUTO_LIFT_ENABLED: bool = True
    # When True a backend failure during a suspension check reports the
    # user as suspended instead of active.
    SUSPENSION_CHECK_FAIL_CLOSED: bool = False

    # --- Verified links ---
    VERIFIED_LINKS_PAGE_SIZE: int = 1000
    VERIFIED_LINK_CREATOR_ID: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators would otherwise only notice on the first remote call.
        """
        _log = logging.getLogger("safeqr.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty; every Supabase call will fail "
                "until it is configured."
            )

        if not self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_SERVICE_ROLE_KEY is empty; admin operations will "
                "use the anon key and may be rejected by row-level security."
            )

        return self

    @property
    def admin_key(self) -> str:
        """Key used for admin operations; falls back to the anon key."""
        service_key = self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value()
        return service_key or self.SUPABASE_ANON_KEY.get_secret_value()

    @property
    def log_level(self) -> int:
        """Numeric logging level parsed from ``LOG_LEVEL``."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path stays lock-free
    while first initialisation remains thread-safe.

    Prefer direct constructor injection of ``AppConfig`` in new code;
    this factory exists for the logger and the CLI entry point.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
