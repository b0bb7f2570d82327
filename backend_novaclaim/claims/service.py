"""
ClaimService: the one object the API layer talks to.

Wires validator -> ledger for the write path and exposes the aggregator and
ledger reads. Validation and authorization failures are raised before the
ledger (and therefore the database) is touched.
"""

from __future__ import annotations

from typing import Any, Mapping

from backend_novaclaim.allocations.registry import AllocationRegistry
from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.claims.aggregator import DEFAULT_RECENT_LIMIT, BalanceAggregator
from backend_novaclaim.claims.ledger import ClaimLedger
from backend_novaclaim.claims.models import (
    AllocationStatus,
    ClaimReceipt,
    ClaimRecord,
    GlobalStats,
    WalletSummary,
)
from backend_novaclaim.claims.validator import ClaimValidator
from backend_novaclaim.core.exceptions import (
    ClaimAuthorizationError,
    ClaimValidationError,
    TransactionNotFoundError,
)
from backend_novaclaim.database.database import ClaimDatabase

logger = get_logger(__name__)


class ClaimService:
    def __init__(
        self,
        db: ClaimDatabase,
        registry: AllocationRegistry,
        *,
        recent_claims_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        self.db = db
        self.registry = registry
        self.validator = ClaimValidator(registry)
        self.ledger = ClaimLedger(db)
        self.aggregator = BalanceAggregator(db, registry)
        self.recent_claims_limit = recent_claims_limit

    def claim(self, raw: Mapping[str, Any]) -> ClaimReceipt:
        """Validate, check the allocation, and record a claim exactly once."""
        try:
            claim = self.validator.validate(raw)
        except (ClaimValidationError, ClaimAuthorizationError) as e:
            logger.info(
                "claim_rejected",
                kind=e.kind,
                wallet=str(raw.get("wallet_address") or ""),
                details=e.details,
            )
            raise
        return self.ledger.submit(claim)

    def wallet_claims(self, wallet: str) -> tuple[WalletSummary, list[ClaimRecord]]:
        return self.aggregator.wallet_claims(wallet)

    def global_stats(self) -> GlobalStats:
        return self.aggregator.global_stats(self.recent_claims_limit)

    def allocation_status(self, wallet: str) -> AllocationStatus:
        return self.aggregator.allocation_status(wallet)

    def verify_transaction(self, transaction_hash: str) -> ClaimRecord:
        record = self.ledger.get_by_transaction(transaction_hash)
        if record is None:
            raise TransactionNotFoundError(transaction_hash)
        return record

    def reload_allocations(self) -> int:
        count = self.registry.reload()
        logger.info("allocations_reloaded", wallet_count=count)
        return count
