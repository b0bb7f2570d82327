"""
Wallet allocation registry: immutable address -> entitlement snapshot.

Loaded from a CSV with columns wallet_address, taral_amount, rvlng_amount.
Addresses are lower-cased on load and on lookup. The active table is a
read-only mapping that is only ever replaced as a whole (reload builds a new
table and swaps the reference), never edited in place.
"""

from __future__ import annotations

import csv
import threading
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from backend_novaclaim.claim_logging import get_logger
from backend_novaclaim.core.amounts import TokenKind, parse_decimal
from backend_novaclaim.core.exceptions import AllocationLoadError

logger = get_logger(__name__)

ADDRESS_COLUMN = "wallet_address"
AMOUNT_COLUMNS = {
    TokenKind.TARAL: "taral_amount",
    TokenKind.RVLNG: "rvlng_amount",
}


def normalize_address(address: str | None) -> str:
    return (address or "").strip().lower()


@dataclass(frozen=True)
class AllocationEntry:
    """Entitlement of one wallet."""

    address: str
    taral: Decimal
    rvlng: Decimal

    def amount_for(self, kind: TokenKind) -> Decimal:
        return self.taral if kind is TokenKind.TARAL else self.rvlng


def parse_allocation_rows(rows: Iterable[Mapping[str, str | None]]) -> tuple[dict[str, AllocationEntry], int]:
    """
    Build an address-keyed table from CSV rows. Returns (table, skipped_count).

    Rows with an empty address or a missing/negative/non-numeric amount are skipped.
    A repeated address replaces the earlier row.
    """
    table: dict[str, AllocationEntry] = {}
    skipped = 0
    for row in rows:
        address = normalize_address(row.get(ADDRESS_COLUMN))
        amounts = {kind: parse_decimal(row.get(column)) for kind, column in AMOUNT_COLUMNS.items()}
        if not address or any(a is None or a < 0 for a in amounts.values()):
            skipped += 1
            logger.warning(
                "allocation_row_skipped",
                wallet=address,
                taral_amount=row.get(AMOUNT_COLUMNS[TokenKind.TARAL]),
                rvlng_amount=row.get(AMOUNT_COLUMNS[TokenKind.RVLNG]),
            )
            continue
        if address in table:
            logger.debug("allocation_row_duplicate", wallet=address)
        table[address] = AllocationEntry(
            address=address,
            taral=amounts[TokenKind.TARAL],
            rvlng=amounts[TokenKind.RVLNG],
        )
    return table, skipped


class AllocationRegistry:
    """
    Process-wide allocation table with an atomic reload.

    Lookups read a single reference to an immutable mapping, so they never need
    the lock; the lock only serializes concurrent reloads.
    """

    def __init__(self, source: str | Path | None = None, table: Mapping[str, AllocationEntry] | None = None) -> None:
        self._source = Path(source) if source is not None else None
        self._table: Mapping[str, AllocationEntry] = MappingProxyType(dict(table or {}))
        self._reload_lock = threading.Lock()

    @classmethod
    def from_csv(cls, path: str | Path, *, strict: bool = False) -> "AllocationRegistry":
        """
        Create a registry and load it from path.

        A failed initial load is logged and leaves the registry empty (every lookup
        reports absent) unless strict=True, in which case AllocationLoadError propagates.
        """
        registry = cls(path)
        try:
            registry.reload()
        except AllocationLoadError as e:
            if strict:
                raise
            logger.error("allocations_initial_load_failed", source=str(path), error=e.message)
        return registry

    @property
    def source(self) -> Path | None:
        return self._source

    @property
    def wallet_count(self) -> int:
        return len(self._table)

    def load(self) -> Mapping[str, AllocationEntry]:
        """Parse the CSV source into a new read-only table. Does not touch the active table."""
        if self._source is None:
            raise AllocationLoadError("<none>", "no allocation source configured")
        try:
            with self._source.open("r", encoding="utf-8", newline="") as f:
                reader = csv.DictReader(line for line in f if line.strip())
                fieldnames = [(name or "").strip() for name in (reader.fieldnames or [])]
                missing = [c for c in (ADDRESS_COLUMN, *AMOUNT_COLUMNS.values()) if c not in fieldnames]
                if missing:
                    raise AllocationLoadError(str(self._source), f"missing columns: {', '.join(missing)}")
                reader.fieldnames = fieldnames
                table, skipped = parse_allocation_rows(reader)
        except OSError as e:
            raise AllocationLoadError(str(self._source), str(e)) from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise AllocationLoadError(str(self._source), f"malformed CSV: {e}") from e
        logger.info(
            "allocations_loaded",
            source=str(self._source),
            wallet_count=len(table),
            skipped_rows=skipped,
        )
        return MappingProxyType(table)

    def reload(self) -> int:
        """
        Re-read the source and atomically replace the active table. Returns the wallet count.

        On failure the previous table stays active and AllocationLoadError propagates.
        """
        with self._reload_lock:
            table = self.load()
            self._table = table
        return len(table)

    def entry(self, address: str) -> AllocationEntry | None:
        return self._table.get(normalize_address(address))

    def lookup(self, address: str, kind: TokenKind) -> Decimal | None:
        """Entitled amount of kind for address, or None when the wallet is not registered."""
        entry = self.entry(address)
        if entry is None:
            return None
        return entry.amount_for(kind)
