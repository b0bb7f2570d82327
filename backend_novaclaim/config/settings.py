"""
Application settings.

Loads configuration from environment variables (and .env via env.py), applies
defaults, and exposes one typed Settings object for the API server, database
layer and allocation registry.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass, field
from pathlib import Path

from backend_novaclaim.config.env import (
    get_allocations_csv_path,
    get_database_url,
    load_novaclaim_env,
)


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the claim service."""

    database_url: str
    allocations_csv_path: Path
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    db_timeout_sec: float = 30.0
    """SQLite busy timeout / lock wait; bounds how long a claim waits for the writer lock."""
    recent_claims_limit: int = 10
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings (cached).

    Tests that change env vars call get_settings.cache_clear() first.
    """
    load_novaclaim_env()
    origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "*").split(",") if o.strip()]
    return Settings(
        database_url=get_database_url(),
        allocations_csv_path=get_allocations_csv_path(),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_env_int("API_PORT", 3001),
        db_timeout_sec=_env_float("DB_TIMEOUT_SEC", 30.0),
        recent_claims_limit=_env_int("RECENT_CLAIMS_LIMIT", 10),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        cors_origins=origins or ["*"],
    )
