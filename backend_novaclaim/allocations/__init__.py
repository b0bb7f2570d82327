"""
Wallet allocation table (CSV-sourced, immutable at runtime except via reload).
"""

from backend_novaclaim.allocations.registry import (
    AllocationEntry,
    AllocationRegistry,
    normalize_address,
)

__all__ = ["AllocationEntry", "AllocationRegistry", "normalize_address"]
