"""
Ledger persistence: SQLAlchemy engine/session management and table models.

SQLite file by default; PostgreSQL when DATABASE_URL is set.
"""

from backend_novaclaim.database.database import (
    ClaimDatabase,
    get_database,
    reset_databases_for_test,
)
from backend_novaclaim.database.models import Base, Claim, WalletAccount

__all__ = [
    "Base",
    "Claim",
    "ClaimDatabase",
    "WalletAccount",
    "get_database",
    "reset_databases_for_test",
]
