"""
API server package: HTTP interface to the claim core.

Routing, request parsing and error-to-status mapping only; all claim rules
live in backend_novaclaim.claims.
"""
