"""
Tests for per-wallet summaries, global stats and allocation status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from backend_novaclaim.claims.aggregator import (
    PRIVACY_ADDRESS_PREFIX,
    fold_claims,
    truncate_address,
)
from backend_novaclaim.core.amounts import TokenKind
from backend_novaclaim.core.exceptions import WalletNotFoundError
from backend_novaclaim.database.models import Claim, WalletAccount

WALLET_HUNDRED = "0x1111111111111111111111111111111111111111"
WALLET_MIXED = "0x2222222222222222222222222222222222aaaabb"


@pytest.fixture
def populated(service, make_claim):
    """Three claims across two wallets."""
    service.claim(make_claim())  # 0xabc 50 TARAL @2 -> 100 NOVA
    service.claim(
        make_claim(
            wallet_address=WALLET_MIXED,
            amount="10",
            transaction_hash="m1",
            conversion_rate="1.5",
            timestamp="2024-01-01T00:00:00Z",
        )
    )
    service.claim(
        make_claim(
            wallet_address=WALLET_MIXED,
            token_type="RVLNG",
            amount="30.5",
            transaction_hash="m2",
            conversion_rate=None,
            timestamp="2024-03-01T00:00:00Z",
        )
    )
    return service


def test_summary_after_example_claim(service, make_claim):
    service.claim(make_claim())
    summary = service.wallet_claims("0xABC")[0]
    assert summary.address == "0xabc"
    assert summary.totals.taral_claimed == Decimal("50")
    assert summary.totals.rvlng_claimed == Decimal("0")
    assert summary.totals.total_nova == Decimal("100")
    assert summary.totals.total_claims == 1
    assert summary.first_claim_at == summary.last_claim_at


def test_summary_for_wallet_without_claims(service):
    with pytest.raises(WalletNotFoundError) as exc:
        service.wallet_claims("0xabc")
    assert exc.value.status_code == 404
    assert exc.value.details["total_claims"] == 0


def test_wallet_claims_history_and_bounds(populated):
    summary, records = populated.wallet_claims(WALLET_MIXED)
    assert [r.transaction_hash for r in records] == ["m2", "m1"]
    assert summary.totals.taral_claimed == Decimal("10")
    assert summary.totals.rvlng_claimed == Decimal("30.5")
    assert summary.totals.total_nova == Decimal("45.5")
    assert summary.totals.total_claims == 2
    assert summary.first_claim_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert summary.last_claim_at == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert summary.to_dict()["firstClaimAt"] == "2024-01-01T00:00:00+00:00"


def test_summary_is_rederived_from_claims(populated, claims_db):
    """A drifted stored aggregate does not leak into the summary."""
    with claims_db.session_scope() as session:
        session.execute(
            update(WalletAccount)
            .where(WalletAccount.address == WALLET_MIXED)
            .values(taral_claimed_units=999, total_nova_units=1)
        )
    summary = populated.wallet_claims(WALLET_MIXED)[0]
    assert summary.totals.taral_claimed == Decimal("10")
    assert summary.totals.total_nova == Decimal("45.5")


def test_global_stats(populated):
    stats = populated.global_stats()
    assert stats.wallet_count == 2
    assert stats.claim_count == 3
    assert stats.total_taral == Decimal("60")
    assert stats.total_rvlng == Decimal("30.5")
    assert stats.total_nova == Decimal("145.5")
    assert len(stats.recent_claims) == 3
    assert stats.recent_claims[0].wallet_address == truncate_address(WALLET_MIXED)
    for recent in stats.recent_claims:
        assert recent.wallet_address.endswith("...")
        assert len(recent.wallet_address) <= PRIVACY_ADDRESS_PREFIX + 3

    body = stats.to_dict()
    assert body["totalWallets"] == 2
    assert body["totalNovaDistributed"] == 145.5


def test_global_stats_empty_ledger(service):
    stats = service.global_stats()
    assert stats.wallet_count == 0
    assert stats.claim_count == 0
    assert stats.total_taral == Decimal("0")
    assert stats.total_nova == Decimal("0")
    assert stats.recent_claims == []


def test_global_stats_recent_limit(populated):
    stats = populated.aggregator.global_stats(recent_limit=2)
    assert len(stats.recent_claims) == 2
    assert stats.claim_count == 3


def test_allocation_status_after_example(service, make_claim):
    service.claim(make_claim())
    status = service.allocation_status("0xABC")
    taral = status.kinds[TokenKind.TARAL]
    assert taral.allocated == Decimal("50")
    assert taral.claimed == Decimal("50")
    assert taral.remaining == Decimal("0")
    assert taral.can_claim is False
    rvlng = status.kinds[TokenKind.RVLNG]
    assert rvlng.allocated == Decimal("0")
    assert rvlng.can_claim is False
    body = status.to_dict()
    assert body["address"] == "0xabc"
    assert body["allocations"]["taral"] == {"allocated": 50.0, "claimed": 50.0, "remaining": 0.0, "canClaim": False}


def test_allocation_status_before_any_claim(service):
    status = service.allocation_status(WALLET_HUNDRED)
    taral = status.kinds[TokenKind.TARAL]
    assert taral.claimed == Decimal("0")
    assert taral.remaining == Decimal("100")
    assert taral.can_claim is True
    assert status.kinds[TokenKind.RVLNG].remaining == Decimal("20")


def test_allocation_status_remaining_never_negative(service, claims_db, make_claim):
    """Claimed above the allocation (e.g. the table was lowered after a claim) clamps to 0."""
    service.claim(make_claim(wallet_address=WALLET_HUNDRED, amount="100.01", conversion_rate=None))
    with claims_db.session_scope() as session:
        session.execute(
            update(Claim)
            .where(Claim.wallet_address == WALLET_HUNDRED)
            .values(amount_units=150 * 10**9)
        )
    taral = service.allocation_status(WALLET_HUNDRED).kinds[TokenKind.TARAL]
    assert taral.claimed == Decimal("150")
    assert taral.remaining == Decimal("0")
    assert taral.can_claim is False


def test_allocation_status_unknown_wallet(service):
    with pytest.raises(WalletNotFoundError) as exc:
        service.allocation_status("0xdead")
    assert exc.value.message == "Wallet address not found in allocation list"


def test_fold_claims_is_additive(populated, claims_db):
    """Folding two halves and adding equals folding the whole."""
    from sqlalchemy import select

    with claims_db.session_scope() as session:
        rows = list(session.execute(select(Claim).order_by(Claim.id)).scalars())
    whole = fold_claims(rows)
    left, right = fold_claims(rows[:1]), fold_claims(rows[1:])
    assert whole.count == left.count + right.count == 3
    assert whole.taral_units == left.taral_units + right.taral_units
    assert whole.rvlng_units == left.rvlng_units + right.rvlng_units
    assert whole.nova_units == left.nova_units + right.nova_units
    assert whole.first_at == min(left.first_at, right.first_at)
    assert whole.last_at == max(left.last_at, right.last_at)


class _WarningRecorder:
    def __init__(self):
        self.warnings: list[tuple[str, dict]] = []

    def warning(self, event, **kw):
        self.warnings.append((event, kw))

    def __getattr__(self, name):
        return lambda *args, **kw: None


def test_overclaim_warning_only_beyond_tolerance(service, claims_db, make_claim, monkeypatch):
    """100.01 against an allocation of 100 is within tolerance; 150 is not."""
    import backend_novaclaim.claims.aggregator as aggregator_module

    recorder = _WarningRecorder()
    monkeypatch.setattr(aggregator_module, "logger", recorder)

    service.claim(make_claim(wallet_address=WALLET_HUNDRED, amount="100.01", conversion_rate=None))
    taral = service.allocation_status(WALLET_HUNDRED).kinds[TokenKind.TARAL]
    assert taral.claimed == Decimal("100.01")
    assert taral.remaining == Decimal("0")
    assert recorder.warnings == []

    with claims_db.session_scope() as session:
        session.execute(
            update(Claim)
            .where(Claim.wallet_address == WALLET_HUNDRED)
            .values(amount_units=150 * 10**9)
        )
    service.allocation_status(WALLET_HUNDRED)
    assert recorder.warnings == [
        ("allocation_overclaimed", {"wallet": WALLET_HUNDRED, "token_types": ["TARAL"]})
    ]
