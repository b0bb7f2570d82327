"""
structlog setup for the claim service.

One line per claim event: `event_type` (snake_case, e.g. claim_recorded,
claim_conflict, allocations_loaded), ISO timestamp, level, logger name and
the claim context passed as keywords. Wallet addresses are never logged in
full: any `wallet` / `wallet_address` key is cut to its first
WALLET_LOG_PREFIX characters by a processor, whoever logs it.

LOG_LEVEL picks the threshold, LOG_FORMAT=console switches from JSON to the
coloured dev renderer. Imports nothing from backend_novaclaim, so every
other module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

WALLET_LOG_PREFIX = 12
WALLET_KEYS = ("wallet", "wallet_address")


def short_wallet(address: str | None) -> str:
    """First WALLET_LOG_PREFIX characters of address plus '...'; short values unchanged."""
    address = address or ""
    if len(address) <= WALLET_LOG_PREFIX or address.endswith("..."):
        return address
    return address[:WALLET_LOG_PREFIX] + "..."


def _stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _truncate_wallets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in WALLET_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = short_wallet(value)
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type, mirrored into message."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    event_dict.setdefault("message", str(event_dict.get("event_type", "")))
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _stamp,
        _truncate_wallets,
        _event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        # Decimal and datetime values in claim context
        processors.append(structlog.processors.JSONRenderer(default=str))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger for a module; `logger` key carries the module name.

        logger = get_logger(__name__)
        logger.info("claim_recorded", wallet=addr, token_type="TARAL", claim_id=cid)

    {"event_type": "claim_recorded", "wallet": "0x1111111111...", "token_type": "TARAL",
     "claim_id": "...", "logger": "backend_novaclaim.claims.ledger", "level": "info", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(address: str, name: str = "backend_novaclaim.claims") -> structlog.BoundLogger:
    """Logger with the claiming wallet bound for every subsequent event of one claim."""
    return get_logger(name).bind(wallet=short_wallet(address))
