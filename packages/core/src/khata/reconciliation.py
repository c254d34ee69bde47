"""Bank reconciliation matching.

Proposes pairings between bank transactions and recorded ledger entries
(sales for credits, expenses for debits). Proposals are suggestions for a
human to confirm; nothing here writes to storage or mutates its inputs.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from khata.config.settings import get_settings
from khata.dates import parse_date
from khata.errors import InvalidInputError
from khata.money import to_decimal

if TYPE_CHECKING:
    from khata.store.base import DocumentStore

logger = structlog.get_logger(__name__)


class EntryKind(str, Enum):
    """Ledger entry kinds offered to the matcher."""

    SALE = "sale"
    EXPENSE = "expense"


class Direction(str, Enum):
    """Direction of money movement on the bank statement."""

    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class LedgerEntry:
    """Read-only snapshot of an invoice or expense record."""

    id: str
    kind: EntryKind
    amount: Decimal
    occurred_at: date
    display_number: str

    def __post_init__(self) -> None:
        _normalize(self, "ledger entry")
        object.__setattr__(self, "kind", _coerce_enum(EntryKind, self.kind, self.id))


@dataclass(frozen=True)
class BankTransaction:
    """A line from a bank feed or statement import."""

    id: str
    amount: Decimal
    occurred_at: date
    direction: Direction
    description: str = ""

    def __post_init__(self) -> None:
        _normalize(self, "bank transaction")
        object.__setattr__(
            self, "direction", _coerce_enum(Direction, self.direction, self.id)
        )


def _normalize(record: Any, label: str) -> None:
    """Coerce amount to Decimal and occurred_at to a plain date in place."""
    object.__setattr__(record, "amount", to_decimal(record.amount))
    occurred_at = parse_date(record.occurred_at)
    if occurred_at is None:
        raise InvalidInputError(
            f"Invalid {label} date",
            details={"id": record.id, "occurred_at": record.occurred_at},
        )
    object.__setattr__(record, "occurred_at", occurred_at)


def _coerce_enum(enum_cls: Any, value: Any, record_id: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidInputError(
            f"Invalid {enum_cls.__name__}: {value!r}", details={"id": record_id}
        ) from exc


@dataclass(frozen=True)
class MatchProposal:
    """A suggested pairing awaiting human confirmation."""

    transaction: BankTransaction
    entry: LedgerEntry
    confidence: float

    @property
    def day_distance(self) -> int:
        return abs((self.entry.occurred_at - self.transaction.occurred_at).days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction.id,
            "entry_id": self.entry.id,
            "entry_kind": self.entry.kind.value,
            "display_number": self.entry.display_number,
            "amount": str(self.transaction.amount),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class MatchPolicy:
    """Tolerances and confidence scores used by the matcher."""

    amount_tolerance: Decimal = Decimal("0.01")
    window_days: int = 7
    credit_confidence: float = 0.9
    debit_confidence: float = 0.8

    @classmethod
    def from_settings(cls) -> MatchPolicy:
        settings = get_settings()
        return cls(
            amount_tolerance=settings.match_amount_tolerance,
            window_days=settings.match_window_days,
        )

    def kind_for(self, direction: Direction) -> EntryKind:
        return EntryKind.SALE if direction == Direction.CREDIT else EntryKind.EXPENSE

    def confidence_for(self, direction: Direction) -> float:
        if direction == Direction.CREDIT:
            return self.credit_confidence
        return self.debit_confidence

    def accepts(self, transaction: BankTransaction, entry: LedgerEntry) -> bool:
        """Return True if the entry is a candidate for the transaction."""
        if entry.kind != self.kind_for(transaction.direction):
            return False
        if abs(entry.amount - transaction.amount) >= self.amount_tolerance:
            return False
        return abs((entry.occurred_at - transaction.occurred_at).days) < self.window_days


class ReconciliationMatcher:
    """Match bank transactions to ledger entries under a policy."""

    def __init__(self, policy: MatchPolicy | None = None) -> None:
        self.policy = policy or MatchPolicy()

    def reconcile(
        self,
        transactions: Sequence[BankTransaction],
        candidate_entries: Sequence[LedgerEntry],
    ) -> list[MatchProposal]:
        """Propose at most one entry per transaction, first match wins.

        Candidates are scanned in the order given, not by closeness, and an
        entry may be proposed for more than one transaction. Transactions
        without a candidate are left out of the result.
        """
        proposals: list[MatchProposal] = []
        for transaction in transactions:
            entry = next(
                (e for e in candidate_entries if self.policy.accepts(transaction, e)),
                None,
            )
            if entry is not None:
                proposals.append(
                    MatchProposal(
                        transaction=transaction,
                        entry=entry,
                        confidence=self.policy.confidence_for(transaction.direction),
                    )
                )
        return proposals

    def reconcile_ranked(
        self,
        transactions: Sequence[BankTransaction],
        candidate_entries: Sequence[LedgerEntry],
    ) -> list[MatchProposal]:
        """Propose one-to-one pairings, closest dates first.

        Every acceptable pair is ranked by day distance (then input order)
        and assigned greedily, so no entry is claimed twice. Results follow
        the transaction input order.
        """
        pairs: list[tuple[int, int, int]] = []
        for t_idx, transaction in enumerate(transactions):
            for e_idx, entry in enumerate(candidate_entries):
                if self.policy.accepts(transaction, entry):
                    distance = abs((entry.occurred_at - transaction.occurred_at).days)
                    pairs.append((distance, t_idx, e_idx))
        pairs.sort()

        chosen: dict[int, int] = {}
        claimed: set[int] = set()
        for _, t_idx, e_idx in pairs:
            if t_idx in chosen or e_idx in claimed:
                continue
            chosen[t_idx] = e_idx
            claimed.add(e_idx)

        return [
            MatchProposal(
                transaction=transactions[t_idx],
                entry=candidate_entries[chosen[t_idx]],
                confidence=self.policy.confidence_for(transactions[t_idx].direction),
            )
            for t_idx in sorted(chosen)
        ]


def reconcile(
    transactions: Sequence[BankTransaction],
    candidate_entries: Sequence[LedgerEntry],
    policy: MatchPolicy | None = None,
) -> list[MatchProposal]:
    """First-match reconciliation with the default (or given) policy."""
    return ReconciliationMatcher(policy).reconcile(transactions, candidate_entries)


def reconcile_ranked(
    transactions: Sequence[BankTransaction],
    candidate_entries: Sequence[LedgerEntry],
    policy: MatchPolicy | None = None,
) -> list[MatchProposal]:
    """One-to-one reconciliation ranked by date proximity."""
    return ReconciliationMatcher(policy).reconcile_ranked(transactions, candidate_entries)


def unmatched_transactions(
    transactions: Sequence[BankTransaction],
    proposals: Sequence[MatchProposal],
) -> list[BankTransaction]:
    """Transactions that received no proposal, in input order."""
    matched_ids = {proposal.transaction.id for proposal in proposals}
    return [tx for tx in transactions if tx.id not in matched_ids]


async def propose_matches(
    store: DocumentStore,
    owner_id: str,
    transactions: Sequence[BankTransaction],
    window_days: int | None = None,
    ranked: bool = False,
) -> list[MatchProposal]:
    """Load the owner's candidate entries and run the matcher.

    The candidate window spans the transactions' dates widened by the match
    window on both sides.
    """
    if not transactions:
        return []

    policy = MatchPolicy.from_settings()
    if window_days is not None:
        policy = replace(policy, window_days=window_days)

    dates = [tx.occurred_at for tx in transactions]
    start = min(dates) - timedelta(days=policy.window_days)
    end = max(dates) + timedelta(days=policy.window_days + 1)
    entries = await store.list_ledger_entries(owner_id, start, end)

    matcher = ReconciliationMatcher(policy)
    if ranked:
        proposals = matcher.reconcile_ranked(transactions, entries)
    else:
        proposals = matcher.reconcile(transactions, entries)

    logger.info(
        "reconciliation_proposed",
        owner_id=owner_id,
        transactions=len(transactions),
        candidates=len(entries),
        matched=len(proposals),
        unmatched=len(transactions) - len(proposals),
        ranked=ranked,
    )
    return proposals


# =============================================================================
# DOCUMENT PARSING
# =============================================================================


def _first_present(document: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = document.get(key)
        if value not in (None, ""):
            return value
    return None


def ledger_entry_from_document(kind: EntryKind, document: Mapping[str, Any]) -> LedgerEntry:
    """Build a LedgerEntry from an invoice or expense document.

    Raises:
        InvalidInputError: If the id, amount or date is missing or malformed.
    """
    if kind == EntryKind.SALE:
        raw_amount = _first_present(document, "total", "totalAmount")
        raw_date = _first_present(document, "createdAt", "date")
        number = _first_present(document, "invoiceNumber", "number")
    else:
        raw_amount = _first_present(document, "totalAmount", "amount")
        raw_date = _first_present(document, "date", "createdAt")
        number = _first_present(document, "expenseNumber", "number")

    doc_id = document.get("id")
    occurred_at = parse_date(raw_date)
    if not doc_id or raw_amount is None or occurred_at is None:
        raise InvalidInputError(
            f"Malformed {kind.value} document", details={"id": doc_id}
        )

    return LedgerEntry(
        id=str(doc_id),
        kind=kind,
        amount=to_decimal(raw_amount),
        occurred_at=occurred_at,
        display_number=str(number or doc_id),
    )


def bank_transaction_from_document(document: Mapping[str, Any]) -> BankTransaction:
    """Build a BankTransaction from a bank feed document.

    Raises:
        InvalidInputError: If the id, amount, date or type is missing or malformed.
    """
    doc_id = document.get("id")
    raw_amount = document.get("amount")
    occurred_at = parse_date(_first_present(document, "date", "occurredAt"))
    try:
        direction = Direction(str(document.get("type", "")).strip().lower())
    except ValueError:
        direction = None

    if not doc_id or raw_amount is None or occurred_at is None or direction is None:
        raise InvalidInputError("Malformed bank transaction", details={"id": doc_id})

    return BankTransaction(
        id=str(doc_id),
        amount=to_decimal(raw_amount),
        occurred_at=occurred_at,
        direction=direction,
        description=str(document.get("description") or ""),
    )


# =============================================================================
# DEMO FEED
# =============================================================================

MOCK_DESCRIPTIONS = (
    "Client Payment - ABC Corp",
    "Office Rent",
    "Electricity Bill",
    "Software Subscription",
    "Freelancer Payment",
    "Equipment Purchase",
    "Marketing Expense",
    "Travel Allowance",
)


def generate_mock_transactions(
    count: int = 10,
    today: date | None = None,
    rng: random.Random | None = None,
) -> list[BankTransaction]:
    """Generate a demo bank feed from the last 30 days, newest first."""
    today = today or date.today()
    rng = rng or random.Random()

    transactions = [
        BankTransaction(
            id=f"txn_{today:%Y%m%d}_{i}",
            amount=Decimal(rng.randrange(1000, 51000)),
            occurred_at=today - timedelta(days=rng.randrange(0, 30)),
            direction=Direction.CREDIT if rng.random() > 0.4 else Direction.DEBIT,
            description=rng.choice(MOCK_DESCRIPTIONS),
        )
        for i in range(count)
    ]
    return sorted(transactions, key=lambda tx: tx.occurred_at, reverse=True)
