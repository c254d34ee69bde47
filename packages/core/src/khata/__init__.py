"""Khata - computation core for small-business bookkeeping."""

__version__ = "0.1.0"

from khata.config import configure_logging, get_settings
from khata.errors import (
    DuplicateDocumentError,
    FormatError,
    InvalidInputError,
    JurisdictionError,
    KhataError,
    MissingInputError,
    NumberingError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)
from khata.numbering import DocumentNumberer, DocumentType
from khata.payroll import (
    PayrollRecord,
    StatutoryPayrollCalculator,
    StatutoryRates,
    summarize_payroll,
)
from khata.reconciliation import (
    BankTransaction,
    LedgerEntry,
    MatchProposal,
    ReconciliationMatcher,
    propose_matches,
    reconcile,
    reconcile_ranked,
)
from khata.store import DocumentStoreClient, InMemoryDocumentStore
from khata.tax import (
    TaxBreakdown,
    compute_invoice_totals,
    from_exclusive,
    from_inclusive,
    suggest_category,
    validate_registration_id,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "configure_logging",
    "get_settings",
    # Errors
    "KhataError",
    "ValidationError",
    "InvalidInputError",
    "MissingInputError",
    "FormatError",
    "JurisdictionError",
    "StoreError",
    "StoreUnavailableError",
    "DuplicateDocumentError",
    "NumberingError",
    # Tax
    "TaxBreakdown",
    "from_inclusive",
    "from_exclusive",
    "validate_registration_id",
    "suggest_category",
    "compute_invoice_totals",
    # Payroll
    "PayrollRecord",
    "StatutoryRates",
    "StatutoryPayrollCalculator",
    "summarize_payroll",
    # Reconciliation
    "BankTransaction",
    "LedgerEntry",
    "MatchProposal",
    "ReconciliationMatcher",
    "reconcile",
    "reconcile_ranked",
    "propose_matches",
    # Numbering & storage
    "DocumentNumberer",
    "DocumentType",
    "DocumentStoreClient",
    "InMemoryDocumentStore",
]
