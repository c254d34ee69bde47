"""Sequential, human-readable document numbers.

Numbers look like ``INV-202401-007``: a document-type prefix, the year and
month, and a sequence that restarts every month for every owner. The
sequence comes from counting the owner's documents in that month, or from
an atomic reservation when the store can provide one. If the store cannot
be reached, a ``PREFIX-<epoch millis>`` number is returned instead so that
record creation never blocks on numbering.
"""

import asyncio
from collections.abc import Callable
from datetime import date, datetime, timezone, tzinfo
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from khata.config import get_settings
from khata.dates import month_key, start_of_month, start_of_next_month
from khata.errors import DuplicateDocumentError, NumberingError, StoreError
from khata.store.base import CREATED_FIELD, OWNER_FIELD, DocumentStore, SequenceReserver

logger = structlog.get_logger(__name__)

SEQUENCE_WIDTH = 3
RETRY_BASE_DELAY = 0.05  # seconds


class DocumentType(str, Enum):
    """Number prefixes of the document types that get numbered."""

    INVOICE = "INV"
    EXPENSE = "EXP"
    PURCHASE_ORDER = "PO"
    PAYROLL = "PAY"
    BILL = "BILL"


def format_sequence_number(prefix: str, as_of: date, sequence: int) -> str:
    """Format ``PREFIX-YYYYMM-NNN``; sequences past 999 simply widen."""
    return f"{prefix}-{month_key(as_of)}-{sequence:0{SEQUENCE_WIDTH}d}"


def fallback_number(prefix: str, now: datetime) -> str:
    """Non-sequential ``PREFIX-<epoch millis>`` number."""
    return f"{prefix}-{int(now.timestamp() * 1000)}"
def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentNumberer:
    """Mint document numbers scoped by owner, prefix and calendar month.

    Months follow the business's local calendar (``KHATA_TIMEZONE``) unless
    ``as_of`` is passed. Without a reserver the sequence is
    read-then-increment, so two concurrent creations by the same owner can
    mint the same number. Pass a ``SequenceReserver`` or use
    :meth:`create_numbered` when that matters.
    """

    def __init__(
        self,
        store: DocumentStore,
        reserver: SequenceReserver | None = None,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._store = store
        self._reserver = reserver
        self._clock = clock or _utc_now
        self._tz = tz or ZoneInfo(get_settings().timezone)
        self._logger = logger.bind(component="document_numberer")

    def _local_date(self, now: datetime) -> date:
        if now.tzinfo is None:
            return now.date()
        return now.astimezone(self._tz).date()

    async def _sequence(self, owner_id: str, prefix: str, as_of: date) -> int:
        if self._reserver is not None:
            return await self._reserver.reserve_sequence(owner_id, prefix, month_key(as_of))

        count = await self._store.count_documents(
            owner_id, prefix, start_of_month(as_of), start_of_next_month(as_of)
        )
        return count + 1

    async def _mint(
        self,
        owner_id: str,
        prefix: str,
        as_of: date,
        now: datetime,
        floor: int = 1,
    ) -> tuple[str, int | None]:
        try:
            sequence = await self._sequence(owner_id, prefix, as_of)
        except StoreError as e:
            self._logger.warning(
                "numbering_fallback",
                owner_id=owner_id,
                prefix=prefix,
                error=str(e),
            )
            return fallback_number(prefix, now), None

        sequence = max(sequence, floor)
        return format_sequence_number(prefix, as_of, sequence), sequence

    async def next(
        self,
        owner_id: str,
        prefix: str | DocumentType,
        as_of: date | None = None,
    ) -> str:
        """Return the next number for the owner in the month of ``as_of``.

        Args:
            owner_id: Owner (business account) the document belongs to.
            prefix: Document-type prefix, e.g. ``"INV"``.
            as_of: Date whose month scopes the sequence. Defaults to today.
        """
        prefix = prefix.value if isinstance(prefix, DocumentType) else prefix
        now = self._clock()
        scope_date = as_of or self._local_date(now)
        number, _ = await self._mint(owner_id, prefix, scope_date, now)
        return number

    async def create_numbered(
        self,
        owner_id: str,
        prefix: str | DocumentType,
        document: dict[str, Any],
        as_of: date | None = None,
        max_attempts: int | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """Number and insert a document, retrying on number collisions.

        The store's uniqueness constraint on (owner, number) detects
        concurrent creations; each collision moves the sequence past the
        taken number and waits with exponential backoff.

        Returns:
            The number and the stored document.

        Raises:
            NumberingError: If every attempt collided.
        """
        prefix = prefix.value if isinstance(prefix, DocumentType) else prefix
        attempts = max_attempts or get_settings().numbering_max_attempts
        floor = 1

        for attempt in range(attempts):
            now = self._clock()
            scope_date = as_of or self._local_date(now)
            number, sequence = await self._mint(owner_id, prefix, scope_date, now, floor)
            payload = {
                OWNER_FIELD: owner_id,
                CREATED_FIELD: scope_date.isoformat(),
                **document,
            }
            try:
                stored = await self._store.insert_unique(prefix, number, payload)
            except DuplicateDocumentError:
                self._logger.info(
                    "document_number_collision",
                    owner_id=owner_id,
                    number=number,
                    attempt=attempt + 1,
                )
                if sequence is not None:
                    floor = sequence + 1
                await asyncio.sleep(RETRY_BASE_DELAY * 2**attempt)
                continue

            self._logger.info("document_numbered", owner_id=owner_id, number=number)
            return number, stored

        raise NumberingError(
            f"Could not mint a unique {prefix} number after {attempts} attempts",
            details={"owner_id": owner_id, "prefix": prefix},
        )
