"""
Claim request validator.

Pure and stateless apart from the allocation registry it reads: turns a raw
request mapping into a NormalizedClaim or raises the first failing check's
error. Never touches storage.

Order (first failure wins):
  1. required fields        -> MissingFieldsError (ids must be strings)
  2. token kind             -> InvalidTokenKindError
  3. amount > 0             -> InvalidAmountError
  4. conversion rate > 0    -> InvalidRateError (absent -> 1)
  5. timestamp, if given    -> InvalidTimestampError
  6. wallet in allocations  -> UnknownWalletError
  7. amount ~= allocation   -> AllocationMismatchError
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from backend_novaclaim.allocations.registry import AllocationRegistry, normalize_address
from backend_novaclaim.claims.models import NormalizedClaim
from backend_novaclaim.core.amounts import (
    MAX_AMOUNT,
    TokenKind,
    parse_decimal,
    within_tolerance,
)
from backend_novaclaim.core.exceptions import (
    AllocationMismatchError,
    InvalidAmountError,
    InvalidRateError,
    InvalidTimestampError,
    InvalidTokenKindError,
    MissingFieldsError,
    UnknownWalletError,
)

REQUIRED_FIELDS = ("token_type", "amount", "transaction_hash", "wallet_address")
# Identifiers: anything but a non-blank string counts as missing.
TEXT_FIELDS = ("transaction_hash", "wallet_address")

DEFAULT_CONVERSION_RATE = Decimal(1)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _missing_fields(raw: Mapping[str, Any]) -> list[str]:
    missing = []
    for name in REQUIRED_FIELDS:
        value = raw.get(name)
        if _is_missing(value) or (name in TEXT_FIELDS and not isinstance(value, str)):
            missing.append(name)
    return missing


def parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 string or Unix seconds -> aware UTC datetime. None if unparseable."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class ClaimValidator:
    """Validates raw claim requests against the allocation registry."""

    def __init__(self, registry: AllocationRegistry) -> None:
        self._registry = registry

    def validate(self, raw: Mapping[str, Any]) -> NormalizedClaim:
        missing = _missing_fields(raw)
        if missing:
            raise MissingFieldsError(missing)

        kind = TokenKind.parse(raw["token_type"])
        if kind is None:
            raise InvalidTokenKindError(raw["token_type"], TokenKind.names())

        amount = parse_decimal(raw["amount"])
        if amount is None or amount <= 0:
            raise InvalidAmountError(raw["amount"])

        raw_rate = raw.get("conversion_rate")
        if _is_missing(raw_rate):
            rate = DEFAULT_CONVERSION_RATE
        else:
            rate = parse_decimal(raw_rate)
            if rate is None or rate <= 0 or amount * rate > MAX_AMOUNT:
                raise InvalidRateError(raw_rate)

        raw_ts = raw.get("timestamp")
        timestamp = None
        if not _is_missing(raw_ts):
            timestamp = parse_timestamp(raw_ts)
            if timestamp is None:
                raise InvalidTimestampError(raw_ts)

        wallet = normalize_address(str(raw["wallet_address"]))
        allocated = self._registry.lookup(wallet, kind)
        if allocated is None:
            raise UnknownWalletError(wallet)
        if not within_tolerance(amount, allocated):
            raise AllocationMismatchError(kind.value, expected=allocated, provided=amount)

        return NormalizedClaim(
            wallet_address=wallet,
            token_type=kind,
            amount=amount,
            transaction_hash=str(raw["transaction_hash"]).strip(),
            conversion_rate=rate,
            timestamp=timestamp,
        )
