"""
Token kinds and fixed-point money helpers.

Amounts, conversion rates and NOVA values are Decimal in Python and stored as
integer units with AMOUNT_DECIMALS places (the way lamports carry SOL), so
repeated aggregate additions never drift.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Any

AMOUNT_DECIMALS = 9
UNITS_PER_TOKEN = 10**AMOUNT_DECIMALS
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMALS)
# Largest value whose units still fit a signed 64-bit column.
MAX_UNITS = 2**63 - 1
MAX_AMOUNT = Decimal(MAX_UNITS) / UNITS_PER_TOKEN

# Claimed amount may differ from the allocation by at most this much.
ALLOCATION_TOLERANCE = Decimal("0.01")


class TokenKind(str, Enum):
    """The two claimable token kinds."""

    TARAL = "TARAL"
    RVLNG = "RVLNG"

    @classmethod
    def parse(cls, value: Any) -> "TokenKind | None":
        """Case-insensitive lookup; None for anything that is not a known kind."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None

    @classmethod
    def names(cls) -> list[str]:
        return [k.value for k in cls]


def quantize(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)


def parse_decimal(value: Any) -> Decimal | None:
    """
    Parse a request value (str, int, float, Decimal) into a finite quantized Decimal.

    Returns None when the value is not a number. bool is rejected even though it is an int.
    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = Decimal(value)
        if not parsed.is_finite():
            return None
        parsed = quantize(parsed)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if abs(parsed) > MAX_AMOUNT:
        return None
    return parsed


def to_units(amount: Decimal) -> int:
    return int(quantize(amount) * UNITS_PER_TOKEN)


def from_units(units: int | None) -> Decimal:
    if not units:
        return quantize(Decimal(0))
    return quantize(Decimal(units) / UNITS_PER_TOKEN)


def within_tolerance(provided: Decimal, expected: Decimal) -> bool:
    return abs(quantize(provided) - quantize(expected)) <= ALLOCATION_TOLERANCE
