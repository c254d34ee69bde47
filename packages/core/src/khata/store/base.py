"""Persistence contract the computation core relies on."""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from khata.reconciliation import EntryKind, LedgerEntry

OWNER_FIELD = "userId"
CREATED_FIELD = "createdAt"
NUMBER_FIELD = "number"

# Document collections (keyed by number prefix) that feed reconciliation.
LEDGER_COLLECTIONS: dict[str, EntryKind] = {
    "INV": EntryKind.SALE,
    "EXP": EntryKind.EXPENSE,
}


class DocumentStore(Protocol):
    """Filtered counts, ledger reads and unique inserts."""

    async def count_documents(
        self, owner_id: str, prefix: str, start: date, end: date
    ) -> int:
        """Count ``prefix`` documents for the owner created in ``[start, end)``."""
        ...

    async def list_ledger_entries(
        self, owner_id: str, start: date, end: date
    ) -> list[LedgerEntry]:
        """Read the owner's sales and expenses dated in ``[start, end)``."""
        ...

    async def insert_unique(
        self, prefix: str, number: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Store a document under a number unique per owner and prefix.

        Raises:
            DuplicateDocumentError: If the owner already has that number.
        """
        ...


class SequenceReserver(Protocol):
    """Atomic increment-and-read of a per (owner, prefix, month) counter."""

    async def reserve_sequence(self, owner_id: str, prefix: str, month_key: str) -> int:
        ...
