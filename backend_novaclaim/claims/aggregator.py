"""
Per-wallet and global claim aggregates.

Wallet summaries are re-derived from the claim rows rather than read from
wallet_accounts, so a drifted stored aggregate can never leak into a read.
The stored aggregate is still what the ledger reports in a claim receipt
(account_totals), read inside the claim's own transaction.

Read paths here run in their own short transactions and may lag an in-flight
claim; they never see a partially written one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend_novaclaim.allocations.registry import AllocationRegistry, normalize_address
from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.claims.models import (
    AllocationStatus,
    ClaimRecord,
    GlobalStats,
    KindAllocationStatus,
    RecentClaim,
    WalletSummary,
    WalletTotals,
)
from backend_novaclaim.core.amounts import ALLOCATION_TOLERANCE, TokenKind, from_units
from backend_novaclaim.core.exceptions import WalletNotFoundError
from backend_novaclaim.database.database import ClaimDatabase
from backend_novaclaim.database.models import Claim, WalletAccount, as_utc

logger = get_logger(__name__)

PRIVACY_ADDRESS_PREFIX = 10
DEFAULT_RECENT_LIMIT = 10


@dataclass
class _Fold:
    """Additive accumulator over claim rows (integer units)."""

    taral_units: int = 0
    rvlng_units: int = 0
    nova_units: int = 0
    count: int = 0
    first_at: datetime | None = None
    last_at: datetime | None = None

    def add(self, record: ClaimRecord, amount_units: int, nova_units: int) -> None:
        if record.token_type is TokenKind.TARAL:
            self.taral_units += amount_units
        else:
            self.rvlng_units += amount_units
        self.nova_units += nova_units
        self.count += 1
        if self.first_at is None or record.timestamp < self.first_at:
            self.first_at = record.timestamp
        if self.last_at is None or record.timestamp > self.last_at:
            self.last_at = record.timestamp

    def totals(self) -> WalletTotals:
        return WalletTotals(
            taral_claimed=from_units(self.taral_units),
            rvlng_claimed=from_units(self.rvlng_units),
            total_nova=from_units(self.nova_units),
            total_claims=self.count,
        )


def fold_claims(rows: Iterable[Claim]) -> _Fold:
    fold = _Fold()
    for row in rows:
        fold.add(row.to_record(), row.amount_units, row.nova_amount_units)
    return fold


def truncate_address(address: str) -> str:
    return address[:PRIVACY_ADDRESS_PREFIX] + "..."


def account_totals(session: Session, wallet: str) -> WalletTotals:
    """Stored aggregate for wallet plus its claim count, read through session."""
    account = session.execute(
        select(WalletAccount).where(WalletAccount.address == wallet)
    ).scalar_one_or_none()
    count = session.execute(
        select(func.count(Claim.id)).where(Claim.wallet_address == wallet)
    ).scalar_one()
    if account is None:
        return WalletTotals(from_units(0), from_units(0), from_units(0), count)
    return WalletTotals(
        taral_claimed=from_units(account.taral_claimed_units),
        rvlng_claimed=from_units(account.rvlng_claimed_units),
        total_nova=from_units(account.total_nova_units),
        total_claims=count,
    )


class BalanceAggregator:
    """Read-side queries over the ledger, combined with the allocation table where needed."""

    def __init__(self, db: ClaimDatabase, registry: AllocationRegistry) -> None:
        self._db = db
        self._registry = registry

    def _claim_rows(self, session: Session, wallet: str) -> list[Claim]:
        return list(
            session.execute(
                select(Claim)
                .where(Claim.wallet_address == wallet)
                .order_by(Claim.timestamp.desc(), Claim.id.desc())
            ).scalars()
        )

    def wallet_claims(self, wallet: str) -> tuple[WalletSummary, list[ClaimRecord]]:
        """Summary plus claim history (newest first). WalletNotFoundError when the wallet has no claims."""
        wallet = normalize_address(wallet)
        with self._db.session_scope() as session:
            rows = self._claim_rows(session, wallet)
            records = [r.to_record() for r in rows]
            fold = fold_claims(rows)
        if not records:
            raise WalletNotFoundError(
                "No claims found for this address",
                address=wallet,
                total_claims=0,
            )
        summary = WalletSummary(
            address=wallet,
            totals=fold.totals(),
            first_claim_at=fold.first_at,
            last_claim_at=fold.last_at,
        )
        return summary, records

    def global_stats(self, recent_limit: int = DEFAULT_RECENT_LIMIT) -> GlobalStats:
        with self._db.session_scope() as session:
            wallet_count = session.execute(select(func.count()).select_from(WalletAccount)).scalar_one()
            claim_count = session.execute(select(func.count(Claim.id))).scalar_one()
            per_kind = dict(
                session.execute(
                    select(Claim.token_type, func.coalesce(func.sum(Claim.amount_units), 0))
                    .group_by(Claim.token_type)
                ).all()
            )
            nova_units = session.execute(
                select(func.coalesce(func.sum(Claim.nova_amount_units), 0))
            ).scalar_one()
            recent_rows = session.execute(
                select(Claim).order_by(Claim.created_at.desc(), Claim.id.desc()).limit(recent_limit)
            ).scalars()
            recent = [
                RecentClaim(
                    claim_id=r.claim_id,
                    wallet_address=truncate_address(r.wallet_address),
                    token_type=TokenKind(r.token_type),
                    amount=from_units(r.amount_units),
                    nova_amount=from_units(r.nova_amount_units),
                    timestamp=as_utc(r.timestamp),
                )
                for r in recent_rows
            ]
        return GlobalStats(
            wallet_count=wallet_count,
            claim_count=claim_count,
            total_taral=from_units(int(per_kind.get(TokenKind.TARAL.value, 0))),
            total_rvlng=from_units(int(per_kind.get(TokenKind.RVLNG.value, 0))),
            total_nova=from_units(int(nova_units)),
            recent_claims=recent,
        )

    def allocation_status(self, wallet: str) -> AllocationStatus:
        """
        Allocated / claimed / remaining per kind. remaining is clamped at 0; a claim may
        exceed its allocation by up to ALLOCATION_TOLERANCE.
        """
        wallet = normalize_address(wallet)
        entry = self._registry.entry(wallet)
        if entry is None:
            raise WalletNotFoundError("Wallet address not found in allocation list", address=wallet)
        with self._db.session_scope() as session:
            claimed_units = dict(
                session.execute(
                    select(Claim.token_type, func.coalesce(func.sum(Claim.amount_units), 0))
                    .where(Claim.wallet_address == wallet)
                    .group_by(Claim.token_type)
                ).all()
            )
        kinds = {
            kind: KindAllocationStatus(
                allocated=entry.amount_for(kind),
                claimed=from_units(int(claimed_units.get(kind.value, 0))),
            )
            for kind in TokenKind
        }
        status = AllocationStatus(address=wallet, kinds=kinds)
        over = [k.value for k, s in kinds.items() if s.claimed - s.allocated > ALLOCATION_TOLERANCE]
        if over:
            logger.warning("allocation_overclaimed", wallet=wallet, token_types=over)
        return status
