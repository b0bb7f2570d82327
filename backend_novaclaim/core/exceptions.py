"""
Application-level exceptions.

One closed hierarchy rooted at ClaimError. Every error carries a stable kind
discriminator, a human message, structured details and the HTTP status the
API layer answers with. Categories:

- ClaimValidationError: malformed request, detected before any storage access.
- ClaimAuthorizationError: wallet or amount does not match the allocation table.
- ClaimConflictError: claim already recorded; details point at the existing record.
- ClaimInternalError: storage failure; the ledger transaction was rolled back.
- NotFoundError: read endpoints with nothing to return.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class ClaimError(Exception):
    """Base for every error the claim core surfaces."""

    kind = "ClaimError"
    category = "internal"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.details:
            payload["details"] = {_camel(k): _jsonable(v) for k, v in self.details.items()}
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


# --- Validation --------------------------------------------------------------


class ClaimValidationError(ClaimError):
    category = "validation"
    status_code = 400


class MissingFieldsError(ClaimValidationError):
    kind = "MissingFields"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Missing required fields: tokenType, amount, transactionHash, userAddress are required",
            missing_fields=list(missing),
        )
        self.missing = list(missing)


class InvalidTokenKindError(ClaimValidationError):
    kind = "InvalidTokenKind"

    def __init__(self, provided: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid token type. Must be {' or '.join(allowed)}",
            provided=str(provided),
            allowed=list(allowed),
        )


class InvalidAmountError(ClaimValidationError):
    kind = "InvalidAmount"

    def __init__(self, provided: Any) -> None:
        super().__init__("Invalid amount. Must be a positive number", provided=str(provided))


class InvalidRateError(ClaimValidationError):
    kind = "InvalidRate"

    def __init__(self, provided: Any) -> None:
        super().__init__("Invalid conversion rate. Must be a positive number", provided=str(provided))


class InvalidTimestampError(ClaimValidationError):
    kind = "InvalidTimestamp"

    def __init__(self, provided: Any) -> None:
        super().__init__(
            "Invalid timestamp. Must be ISO-8601 or Unix seconds",
            provided=str(provided),
        )


# --- Authorization -----------------------------------------------------------


class ClaimAuthorizationError(ClaimError):
    category = "authorization"
    status_code = 403


class UnknownWalletError(ClaimAuthorizationError):
    kind = "UnknownWallet"

    def __init__(self, wallet_address: str) -> None:
        super().__init__(
            "Wallet address not found in allocation list",
            wallet_address=wallet_address,
        )


class AllocationMismatchError(ClaimAuthorizationError):
    kind = "AllocationMismatch"
    status_code = 400

    def __init__(self, token_type: str, expected: Decimal, provided: Decimal) -> None:
        super().__init__(
            f"Invalid claim amount. Expected {expected.normalize():f} {token_type} for this wallet",
            expected_amount=expected,
            provided_amount=provided,
        )
        self.expected = expected
        self.provided = provided


# --- Conflict ----------------------------------------------------------------


class ClaimConflictError(ClaimError):
    category = "conflict"
    status_code = 409

    def __init__(self, message: str, existing_claim_id: str, **details: Any) -> None:
        super().__init__(message, existing_claim_id=existing_claim_id, **details)
        self.existing_claim_id = existing_claim_id


class DuplicateTransactionError(ClaimConflictError):
    kind = "DuplicateTransaction"

    def __init__(self, existing_claim_id: str, processed_at: datetime | None) -> None:
        super().__init__(
            "Transaction already processed",
            existing_claim_id,
            processed_at=processed_at,
        )
        self.processed_at = processed_at


class AlreadyClaimedError(ClaimConflictError):
    kind = "AlreadyClaimed"

    def __init__(self, token_type: str, existing_claim_id: str, claimed_at: datetime | None) -> None:
        super().__init__(
            f"{token_type} already claimed by this wallet",
            existing_claim_id,
            claimed_at=claimed_at,
        )
        self.claimed_at = claimed_at


# --- Internal ----------------------------------------------------------------


class ClaimInternalError(ClaimError):
    kind = "InternalError"
    category = "internal"
    status_code = 500


class ClaimStoreError(ClaimInternalError):
    """Storage unavailable or the claim transaction failed; nothing was written."""


class AllocationLoadError(ClaimInternalError):
    kind = "AllocationLoadFailed"

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Failed to load wallet allocations: {reason}", source=source)


# --- Not found ---------------------------------------------------------------


class NotFoundError(ClaimError):
    category = "not_found"
    status_code = 404


class WalletNotFoundError(NotFoundError):
    kind = "WalletNotFound"


class TransactionNotFoundError(NotFoundError):
    kind = "TransactionNotFound"

    def __init__(self, transaction_hash: str) -> None:
        super().__init__("Transaction not found", transaction_hash=transaction_hash)
