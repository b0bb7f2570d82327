"""
Tests for token kind parsing and fixed-point amount helpers.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from backend_novaclaim.core.amounts import (
    MAX_AMOUNT,
    MAX_UNITS,
    TokenKind,
    from_units,
    parse_decimal,
    to_units,
    within_tolerance,
)


@pytest.mark.parametrize("raw", ["TARAL", "taral", " Taral ", TokenKind.TARAL])
def test_token_kind_parse_case_insensitive(raw):
    assert TokenKind.parse(raw) is TokenKind.TARAL


@pytest.mark.parametrize("raw", ["NOVA", "", None, 1, "TARAL2"])
def test_token_kind_parse_unknown(raw):
    assert TokenKind.parse(raw) is None


def test_parse_decimal_float_goes_through_str():
    assert parse_decimal(0.1) == Decimal("0.1")
    assert parse_decimal("0.1") + parse_decimal("0.2") == Decimal("0.3")


def test_parse_decimal_rounds_half_even_to_nine_places():
    assert parse_decimal("1.0000000005") == Decimal("1.000000000")
    assert parse_decimal("1.0000000015") == Decimal("1.000000002")


def test_parse_decimal_bounds():
    assert parse_decimal(str(MAX_AMOUNT)) == MAX_AMOUNT
    assert parse_decimal(str(MAX_AMOUNT + 1)) is None


def test_units_are_exact():
    assert to_units(Decimal("30.5")) == 30_500_000_000
    assert from_units(30_500_000_000) == Decimal("30.5")
    assert from_units(None) == Decimal(0)
    assert to_units(MAX_AMOUNT) == MAX_UNITS
    total = sum(to_units(Decimal("0.1")) for _ in range(10))
    assert from_units(total) == Decimal("1")


def test_within_tolerance_is_inclusive():
    assert within_tolerance(Decimal("100.01"), Decimal("100"))
    assert within_tolerance(Decimal("99.99"), Decimal("100"))
    assert not within_tolerance(Decimal("100.010000001"), Decimal("100"))
