"""In-memory document store used for demos and tests."""

from __future__ import annotations

import asyncio
import copy
from datetime import date
from typing import Any
from uuid import uuid4

import structlog

from khata.dates import parse_date
from khata.errors import DuplicateDocumentError, InvalidInputError
from khata.reconciliation import LedgerEntry, ledger_entry_from_document
from khata.store.base import (
    CREATED_FIELD,
    LEDGER_COLLECTIONS,
    NUMBER_FIELD,
    OWNER_FIELD,
)

logger = structlog.get_logger(__name__)


class InMemoryDocumentStore:
    """Dict-backed store implementing the DocumentStore contract."""

    def __init__(self) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._logger = logger.bind(component="memory_store")

    def add(self, prefix: str, document: dict[str, Any]) -> dict[str, Any]:
        """Seed a document without any uniqueness check."""
        stored = copy.deepcopy(document)
        stored.setdefault("id", uuid4().hex)
        self._collections.setdefault(prefix, []).append(stored)
        return stored

    def documents(self, prefix: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collections.get(prefix, [])]

    def _in_scope(
        self, document: dict[str, Any], owner_id: str, start: date, end: date
    ) -> bool:
        if document.get(OWNER_FIELD) != owner_id:
            return False
        created = parse_date(document.get(CREATED_FIELD))
        return created is not None and start <= created < end

    async def count_documents(
        self, owner_id: str, prefix: str, start: date, end: date
    ) -> int:
        return sum(
            1
            for doc in self._collections.get(prefix, [])
            if self._in_scope(doc, owner_id, start, end)
        )

    async def list_ledger_entries(
        self, owner_id: str, start: date, end: date
    ) -> list[LedgerEntry]:
        entries: list[LedgerEntry] = []
        for prefix, kind in LEDGER_COLLECTIONS.items():
            for doc in self._collections.get(prefix, []):
                if doc.get(OWNER_FIELD) != owner_id:
                    continue
                try:
                    entry = ledger_entry_from_document(kind, doc)
                except InvalidInputError:
                    self._logger.warning("ledger_document_skipped", id=doc.get("id"))
                    continue
                if start <= entry.occurred_at < end:
                    entries.append(entry)
        return entries

    async def insert_unique(
        self, prefix: str, number: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        owner_id = document.get(OWNER_FIELD)
        async with self._lock:
            existing = self._collections.get(prefix, [])
            if any(
                doc.get(NUMBER_FIELD) == number and doc.get(OWNER_FIELD) == owner_id
                for doc in existing
            ):
                raise DuplicateDocumentError(
                    f"Document number already exists: {number}",
                    status_code=409,
                    details={"prefix": prefix, "number": number},
                )
            return self.add(prefix, {**document, NUMBER_FIELD: number})


class InMemorySequenceStore(InMemoryDocumentStore):
    """In-memory store that also hands out atomic sequence reservations."""

    def __init__(self) -> None:
        super().__init__()
        self._sequences: dict[tuple[str, str, str], int] = {}

    async def reserve_sequence(self, owner_id: str, prefix: str, month_key: str) -> int:
        async with self._lock:
            key = (owner_id, prefix, month_key)
            self._sequences[key] = self._sequences.get(key, 0) + 1
            return self._sequences[key]
