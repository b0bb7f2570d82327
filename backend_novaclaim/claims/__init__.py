"""
Claim-processing core: validator, ledger, balance aggregator and the service wiring them.

Import the concrete modules (claims.ledger, claims.service, ...) directly;
this package keeps no re-exports so the database models can import
claims.models without a cycle.
"""
