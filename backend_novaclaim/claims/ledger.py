"""
Claim ledger: the exactly-once write path.

submit() runs one transaction:
  1. transaction_hash already recorded     -> DuplicateTransactionError
  2. (wallet, token_type) already recorded -> AlreadyClaimedError
  3. generate claim_id
  4. nova = amount * rate
  5. create the wallet account if missing
  6. insert the claim and increment the account totals
  7. commit

Steps 1-2 give the caller a precise answer in the common case. They are not
what guarantees uniqueness: the UNIQUE constraints on claims are. A
concurrent submission that slips past the checks fails at flush/commit with
IntegrityError, which is translated into the same conflict errors after the
rollback. Anything else rolls back and surfaces as ClaimStoreError.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend_novaclaim.claim_logging import bind_wallet, get_logger
from backend_novaclaim.claims.aggregator import account_totals
from backend_novaclaim.claims.models import (
    CLAIM_STATUS_COMPLETED,
    ClaimReceipt,
    ClaimRecord,
    NormalizedClaim,
)
from backend_novaclaim.core.amounts import quantize, to_units
from backend_novaclaim.core.exceptions import (
    AlreadyClaimedError,
    ClaimConflictError,
    ClaimStoreError,
    DuplicateTransactionError,
)
from backend_novaclaim.database.database import ClaimDatabase
from backend_novaclaim.database.models import Claim, WalletAccount, as_utc, utcnow

logger = get_logger(__name__)


def generate_claim_id() -> str:
    """Millisecond epoch prefix plus 40 random bits; the claim_id column is UNIQUE as well."""
    return f"{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _account_insert(dialect: str) -> Any:
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        return None
    return insert


class ClaimLedger:
    """Transactional claim store enforcing one claim per transaction hash and per (wallet, kind)."""

    def __init__(self, db: ClaimDatabase) -> None:
        self._db = db

    # --- write path ---

    def submit(self, claim: NormalizedClaim) -> ClaimReceipt:
        log = bind_wallet(claim.wallet_address, __name__).bind(
            token_type=claim.token_type.value,
            transaction_hash=claim.transaction_hash,
        )
        try:
            with self._db.session_scope(write=True) as session:
                self._check_unique(session, claim)
                receipt = self._record(session, claim)
        except ClaimConflictError as e:
            log.info("claim_conflict", kind=e.kind, existing_claim_id=e.existing_claim_id)
            raise
        except IntegrityError as e:
            conflict = self._conflict_after_violation(claim)
            if conflict is None:
                log.exception("claim_integrity_error", error=str(e.orig))
                raise ClaimStoreError("Claim could not be recorded") from e
            log.info("claim_conflict_on_commit", kind=conflict.kind, existing_claim_id=conflict.existing_claim_id)
            raise conflict from e
        except Exception as e:
            log.exception("claim_submit_failed", error=str(e))
            raise ClaimStoreError("Claim could not be recorded") from e

        log.info(
            "claim_recorded",
            claim_id=receipt.record.claim_id,
            amount=str(receipt.record.amount),
            nova_amount=str(receipt.record.nova_amount),
            total_claims=receipt.wallet_totals.total_claims,
        )
        return receipt

    def _check_unique(self, session: Session, claim: NormalizedClaim) -> None:
        existing = self._find_by_transaction(session, claim.transaction_hash)
        if existing is not None:
            raise DuplicateTransactionError(existing.claim_id, as_utc(existing.created_at))
        existing = self._find_by_wallet_kind(session, claim)
        if existing is not None:
            raise AlreadyClaimedError(claim.token_type.value, existing.claim_id, as_utc(existing.created_at))

    def _record(self, session: Session, claim: NormalizedClaim) -> ClaimReceipt:
        now = utcnow()
        claimed_at = claim.timestamp or now
        amount_units = to_units(claim.amount)
        nova_units = to_units(quantize(claim.nova_amount))

        self._ensure_account(session, claim.wallet_address, claimed_at, now)

        row = Claim(
            claim_id=generate_claim_id(),
            wallet_address=claim.wallet_address,
            token_type=claim.token_type.value,
            amount_units=amount_units,
            transaction_hash=claim.transaction_hash,
            conversion_rate_units=to_units(claim.conversion_rate),
            nova_amount_units=nova_units,
            status=CLAIM_STATUS_COMPLETED,
            timestamp=claimed_at,
            created_at=now,
        )
        session.add(row)
        session.flush()

        claimed_col = WalletAccount.claimed_column(claim.token_type)
        session.execute(
            update(WalletAccount)
            .where(WalletAccount.address == claim.wallet_address)
            .values(
                {
                    claimed_col: claimed_col + amount_units,
                    WalletAccount.total_nova_units: WalletAccount.total_nova_units + nova_units,
                    WalletAccount.last_claim_at: claimed_at,
                    WalletAccount.updated_at: now,
                }
            )
            .execution_options(synchronize_session=False)
        )
        totals = account_totals(session, claim.wallet_address)
        return ClaimReceipt(record=row.to_record(), wallet_totals=totals)

    def _ensure_account(self, session: Session, wallet: str, claimed_at: datetime, now: datetime) -> None:
        """Insert the wallet account if absent; a concurrent creator winning the race is fine."""
        values = {
            "address": wallet,
            "taral_claimed_units": 0,
            "rvlng_claimed_units": 0,
            "total_nova_units": 0,
            "first_claim_at": claimed_at,
            "last_claim_at": claimed_at,
            "created_at": now,
            "updated_at": now,
        }
        insert = _account_insert(self._db.dialect_name)
        if insert is not None:
            session.execute(
                insert(WalletAccount).values(**values).on_conflict_do_nothing(index_elements=["address"])
            )
            return
        if session.get(WalletAccount, wallet) is None:
            session.add(WalletAccount(**values))
            session.flush()

    def _conflict_after_violation(self, claim: NormalizedClaim) -> ClaimConflictError | None:
        """After a constraint violation, find the committed row that won and describe it."""
        try:
            with self._db.session_scope() as session:
                self._check_unique(session, claim)
        except ClaimConflictError as conflict:
            return conflict
        return None

    # --- read path ---

    @staticmethod
    def _find_by_transaction(session: Session, transaction_hash: str) -> Claim | None:
        return session.execute(
            select(Claim).where(Claim.transaction_hash == transaction_hash)
        ).scalar_one_or_none()

    @staticmethod
    def _find_by_wallet_kind(session: Session, claim: NormalizedClaim) -> Claim | None:
        return session.execute(
            select(Claim).where(
                Claim.wallet_address == claim.wallet_address,
                Claim.token_type == claim.token_type.value,
            )
        ).scalar_one_or_none()

    def get_by_transaction(self, transaction_hash: str) -> ClaimRecord | None:
        """The claim recorded for transaction_hash, if any."""
        transaction_hash = (transaction_hash or "").strip()
        if not transaction_hash:
            return None
        with self._db.session_scope() as session:
            row = self._find_by_transaction(session, transaction_hash)
            return row.to_record() if row else None

