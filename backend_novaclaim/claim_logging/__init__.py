"""
Structured logging for the NovaClaim backend.

JSON logs with timestamp, event_type and claim context.
"""

from backend_novaclaim.claim_logging.logger import bind_wallet, get_logger, short_wallet

__all__ = ["bind_wallet", "get_logger", "short_wallet"]
