"""
SQLAlchemy models for the claim ledger.

claims: one row per committed claim (append-only). The two exactly-once
rules are UNIQUE constraints so the database, not a pre-check, is the final
arbiter under concurrency.

wallet_accounts: running per-wallet totals, incremented in the same
transaction as the claim insert.

Amounts are BIGINT fixed-point units (see core.amounts).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from backend_novaclaim.claims.models import ClaimRecord
from backend_novaclaim.core.amounts import TokenKind, from_units

Base = declarative_base()

UQ_CLAIMS_TRANSACTION_HASH = "uq_claims_transaction_hash"
UQ_CLAIMS_WALLET_TOKEN = "uq_claims_wallet_token"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class WalletAccount(Base):
    """Cumulative claims of one wallet. Created on the wallet's first claim, never deleted."""

    __tablename__ = "wallet_accounts"

    address = Column(String(128), primary_key=True)
    taral_claimed_units = Column(BigInteger, nullable=False, default=0)
    rvlng_claimed_units = Column(BigInteger, nullable=False, default=0)
    total_nova_units = Column(BigInteger, nullable=False, default=0)
    first_claim_at = Column(DateTime(timezone=True), nullable=False)
    last_claim_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @staticmethod
    def claimed_column(kind: TokenKind):
        return WalletAccount.taral_claimed_units if kind is TokenKind.TARAL else WalletAccount.rvlng_claimed_units


class Claim(Base):
    """
    Committed claim. Never updated or deleted.
    """

    __tablename__ = "claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(String(64), nullable=False, unique=True)
    wallet_address = Column(
        String(128),
        ForeignKey("wallet_accounts.address"),
        nullable=False,
        index=True,
    )
    token_type = Column(String(16), nullable=False)
    amount_units = Column(BigInteger, nullable=False)
    transaction_hash = Column(String(256), nullable=False)
    conversion_rate_units = Column(BigInteger, nullable=False)
    nova_amount_units = Column(BigInteger, nullable=False)
    status = Column(String(32), nullable=False, default="completed")
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("transaction_hash", name=UQ_CLAIMS_TRANSACTION_HASH),
        UniqueConstraint("wallet_address", "token_type", name=UQ_CLAIMS_WALLET_TOKEN),
        Index("ix_claims_token_type", "token_type"),
    )

    def to_record(self) -> ClaimRecord:
        return ClaimRecord(
            claim_id=self.claim_id,
            wallet_address=self.wallet_address,
            token_type=TokenKind(self.token_type),
            amount=from_units(self.amount_units),
            transaction_hash=self.transaction_hash,
            conversion_rate=from_units(self.conversion_rate_units),
            nova_amount=from_units(self.nova_amount_units),
            timestamp=as_utc(self.timestamp),
            created_at=as_utc(self.created_at),
            status=self.status,
        )
