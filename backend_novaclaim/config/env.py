"""
Environment variable loading for NovaClaim.

- DATABASE_URL: SQLAlchemy URL (PostgreSQL in production)
- CLAIMS_DB_PATH: SQLite file used when DATABASE_URL is unset (default: novaclaim.db)
- ALLOCATIONS_CSV_PATH: wallet allocation table (default: data/wallet_allocations.csv)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_novaclaim/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_SQLITE_PATH = "novaclaim.db"
DEFAULT_ALLOCATIONS_CSV = Path("data") / "wallet_allocations.csv"


def load_novaclaim_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env vars."""
    load_dotenv(_ENV_PATH, override=False)


def get_database_url() -> str:
    """
    Return DATABASE_URL if set; else a SQLite URL built from CLAIMS_DB_PATH.
    """
    load_novaclaim_env()
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("CLAIMS_DB_PATH") or "").strip() or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


def get_allocations_csv_path() -> Path:
    """Return the allocation CSV path; relative paths resolve against the working directory."""
    load_novaclaim_env()
    raw = (os.getenv("ALLOCATIONS_CSV_PATH") or "").strip()
    return Path(raw) if raw else DEFAULT_ALLOCATIONS_CSV


def mask_database_url(url: str) -> str:
    """Strip credentials and query string from a database URL for logging."""
    return url.split("?")[0].split("@")[-1].split("//")[-1]
