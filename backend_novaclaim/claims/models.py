"""
Domain models for the claim core.

Plain dataclasses passed between validator, ledger, aggregator and the API
layer; no ORM coupling. to_dict() renders the camelCase JSON shapes the
claim clients consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from backend_novaclaim.core.amounts import TokenKind

CLAIM_STATUS_COMPLETED = "completed"


def _num(value: Decimal) -> float:
    return float(value)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class NormalizedClaim:
    """A claim request that passed validation and matches the wallet's allocation."""

    wallet_address: str
    """Lower-cased."""
    token_type: TokenKind
    amount: Decimal
    transaction_hash: str
    conversion_rate: Decimal
    timestamp: datetime | None = None
    """Caller-supplied claim time (UTC); None means the ledger assigns one."""

    @property
    def nova_amount(self) -> Decimal:
        return self.amount * self.conversion_rate


@dataclass(frozen=True)
class ClaimRecord:
    """One committed claim row."""

    claim_id: str
    wallet_address: str
    token_type: TokenKind
    amount: Decimal
    transaction_hash: str
    conversion_rate: Decimal
    nova_amount: Decimal
    timestamp: datetime
    created_at: datetime
    status: str = CLAIM_STATUS_COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "claimId": self.claim_id,
            "walletAddress": self.wallet_address,
            "tokenType": self.token_type.value,
            "amount": _num(self.amount),
            "transactionHash": self.transaction_hash,
            "conversionRate": _num(self.conversion_rate),
            "novaAmount": _num(self.nova_amount),
            "status": self.status,
            "timestamp": _iso(self.timestamp),
            "createdAt": _iso(self.created_at),
        }


@dataclass(frozen=True)
class WalletTotals:
    """Aggregate of one wallet's claims."""

    taral_claimed: Decimal
    rvlng_claimed: Decimal
    total_nova: Decimal
    total_claims: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "taralClaimed": _num(self.taral_claimed),
            "rvlngClaimed": _num(self.rvlng_claimed),
            "totalNova": _num(self.total_nova),
            "totalClaims": self.total_claims,
        }


@dataclass(frozen=True)
class ClaimReceipt:
    """Successful claim outcome returned to the caller."""

    record: ClaimRecord
    wallet_totals: WalletTotals

    def to_dict(self) -> dict[str, Any]:
        r = self.record
        return {
            "claimId": r.claim_id,
            "walletAddress": r.wallet_address,
            "tokenType": r.token_type.value,
            "amountClaimed": _num(r.amount),
            "novaReceived": _num(r.nova_amount),
            "conversionRate": _num(r.conversion_rate),
            "transactionHash": r.transaction_hash,
            "status": r.status,
            "timestamp": _iso(r.timestamp),
            "walletTotals": self.wallet_totals.to_dict(),
        }


@dataclass(frozen=True)
class WalletSummary:
    address: str
    totals: WalletTotals
    first_claim_at: datetime | None
    last_claim_at: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.totals.to_dict(),
            "firstClaimAt": _iso(self.first_claim_at),
            "lastClaimAt": _iso(self.last_claim_at),
        }


@dataclass(frozen=True)
class RecentClaim:
    claim_id: str
    wallet_address: str
    """Truncated for privacy."""
    token_type: TokenKind
    amount: Decimal
    nova_amount: Decimal
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "claimId": self.claim_id,
            "walletAddress": self.wallet_address,
            "tokenType": self.token_type.value,
            "amount": _num(self.amount),
            "novaAmount": _num(self.nova_amount),
            "timestamp": _iso(self.timestamp),
        }


@dataclass(frozen=True)
class GlobalStats:
    wallet_count: int
    claim_count: int
    total_taral: Decimal
    total_rvlng: Decimal
    total_nova: Decimal
    recent_claims: list[RecentClaim] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWallets": self.wallet_count,
            "totalClaims": self.claim_count,
            "totalTaralClaimed": _num(self.total_taral),
            "totalRvlngClaimed": _num(self.total_rvlng),
            "totalNovaDistributed": _num(self.total_nova),
            "recentClaims": [c.to_dict() for c in self.recent_claims],
        }


@dataclass(frozen=True)
class KindAllocationStatus:
    allocated: Decimal
    claimed: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(Decimal(0), self.allocated - self.claimed)

    @property
    def can_claim(self) -> bool:
        return self.remaining > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "allocated": _num(self.allocated),
            "claimed": _num(self.claimed),
            "remaining": _num(self.remaining),
            "canClaim": self.can_claim,
        }


@dataclass(frozen=True)
class AllocationStatus:
    address: str
    kinds: dict[TokenKind, KindAllocationStatus]

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "allocations": {kind.value.lower(): status.to_dict() for kind, status in self.kinds.items()},
        }
