"""
NovaClaim backend: one-time TARAL / RVLNG allocation claims converted to NOVA.

Packages: allocations (entitlement table), claims (validator, ledger,
aggregator, service), database (SQLAlchemy engine and models), api_server
(FastAPI surface), config and claim_logging.
"""

__version__ = "0.1.0"
