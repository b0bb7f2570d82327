"""
Main entrypoint: NovaClaim FastAPI server.

Env: DATABASE_URL or CLAIMS_DB_PATH, ALLOCATIONS_CSV_PATH, API_HOST, API_PORT,
LOG_LEVEL, LOG_FORMAT (see backend_novaclaim.config).

Equivalent: uvicorn backend_novaclaim.api_server.app:app --host 0.0.0.0 --port 3001
"""

from __future__ import annotations

# Configure structured JSON logging before other imports that may log
from backend_novaclaim.claim_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Create tables, then run the API server in the main thread."""
    import uvicorn

    from backend_novaclaim.config import get_settings
    from backend_novaclaim.config.env import mask_database_url

    settings = get_settings()
    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        database=mask_database_url(settings.database_url),
        allocations=str(settings.allocations_csv_path),
    )

    from backend_novaclaim.api_server.app import app

    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
