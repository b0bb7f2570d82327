"""
Create NovaClaim ledger tables.

Usage:
    python -m backend_novaclaim.api_server.init_db
"""

from __future__ import annotations

from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.config import get_settings
from backend_novaclaim.config.env import mask_database_url
from backend_novaclaim.database.database import ClaimDatabase

logger = get_logger(__name__)


def main() -> None:
    settings = get_settings()
    logger.info("init_db_start", url=mask_database_url(settings.database_url))
    db = ClaimDatabase(settings.database_url, timeout_sec=settings.db_timeout_sec)
    db.init_db()
    db.dispose()
    logger.info("init_db_done")


if __name__ == "__main__":
    main()
