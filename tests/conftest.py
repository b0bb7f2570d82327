"""
Pytest fixtures for NovaClaim tests. Each test gets its own temporary SQLite
ledger and allocation CSV.
"""

from __future__ import annotations

from pathlib import Path

import pytest

ALLOCATIONS_CSV = """wallet_address,taral_amount,rvlng_amount
0xABC,50,0
0x1111111111111111111111111111111111111111,100.00,20
0x2222222222222222222222222222222222AAAABB,10,30.5
"""


def write_allocations(path: Path, content: str = ALLOCATIONS_CSV) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def allocations_csv(tmp_path):
    return write_allocations(tmp_path / "wallet_allocations.csv")


@pytest.fixture
def registry(allocations_csv):
    from backend_novaclaim.allocations.registry import AllocationRegistry

    return AllocationRegistry.from_csv(allocations_csv, strict=True)


@pytest.fixture
def claims_db(tmp_path):
    """Fresh SQLite ledger with tables created; disposed after the test."""
    from backend_novaclaim.database.database import ClaimDatabase

    db = ClaimDatabase(f"sqlite:///{tmp_path / 'claims.db'}", timeout_sec=30.0)
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def service(claims_db, registry):
    from backend_novaclaim.claims.service import ClaimService

    return ClaimService(claims_db, registry)


@pytest.fixture
def client(tmp_path, allocations_csv, monkeypatch):
    """
    FastAPI TestClient with lifespan run, pointed at a temp DB and the temp allocation CSV.
    Unset DATABASE_URL so SQLite is used.
    """
    from fastapi.testclient import TestClient

    from backend_novaclaim.config import get_settings
    from backend_novaclaim.database.database import reset_databases_for_test

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("CLAIMS_DB_PATH", str(tmp_path / "api_claims.db"))
    monkeypatch.setenv("ALLOCATIONS_CSV_PATH", str(allocations_csv))
    get_settings.cache_clear()
    reset_databases_for_test()

    from backend_novaclaim.api_server.server import app

    with TestClient(app) as c:
        yield c

    reset_databases_for_test()
    get_settings.cache_clear()


@pytest.fixture
def make_claim():
    """Factory for raw claim requests (validator field names); defaults to the 0xabc example."""

    def _make(**overrides):
        body = {
            "token_type": "TARAL",
            "amount": "50",
            "transaction_hash": "tx1",
            "wallet_address": "0xABC",
            "conversion_rate": "2",
        }
        body.update(overrides)
        return body

    return _make
