"""
Test that claim_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from claim_logging and use the logger."""
    from backend_novaclaim.claim_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_short_wallet_truncates_long_addresses():
    from backend_novaclaim.claim_logging import short_wallet

    assert short_wallet("0xabc") == "0xabc"
    assert short_wallet(None) == ""
    assert short_wallet("0x1111111111111111111111111111111111111111") == "0x1111111111..."


def test_bind_wallet_logs_with_wallet_context():
    from structlog.testing import capture_logs

    from backend_novaclaim.claim_logging import bind_wallet

    with capture_logs() as logs:
        bind_wallet("0x1111111111111111111111111111111111111111").info("claim_submitted", token_type="TARAL")
    assert logs[0]["event"] == "claim_submitted"
    assert logs[0]["wallet"] == "0x1111111111..."
    assert logs[0]["token_type"] == "TARAL"


def test_short_wallet_is_idempotent():
    from backend_novaclaim.claim_logging import short_wallet

    once = short_wallet("0x2222222222222222222222222222222222aaaabb")
    assert once == "0x2222222222..."
    assert short_wallet(once) == once


def test_processors_truncate_wallet_keys_and_rename_event():
    from backend_novaclaim.claim_logging.logger import _event_type, _stamp, _truncate_wallets

    event = {
        "event": "claim_recorded",
        "wallet": "0x1111111111111111111111111111111111111111",
        "wallet_address": "0x2222222222222222222222222222222222aaaabb",
        "token_type": "TARAL",
    }
    for processor in (_stamp, _truncate_wallets, _event_type):
        event = processor(None, "info", event)
    assert event["wallet"] == "0x1111111111..."
    assert event["wallet_address"] == "0x2222222222..."
    assert event["event_type"] == "claim_recorded"
    assert event["message"] == "claim_recorded"
    assert "event" not in event
    assert event["timestamp"]
