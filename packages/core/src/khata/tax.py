"""GST calculations and registration validation.

Amounts are Decimals rounded half-up to the paisa. Intra-state tax is split
into two equal domestic halves (CGST/SGST); inter-state tax is carried whole
as IGST. The choice is made from the rate alone: anything above 18% is
treated as inter-state.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from khata.config.reference_loader import load_hsn_categories, load_state_codes
from khata.dates import add_months
from khata.errors import (
    FormatError,
    InvalidInputError,
    JurisdictionError,
    MissingInputError,
)
from khata.money import (
    ZERO,
    Amount,
    quantize_money,
    to_decimal,
    to_non_negative,
)

logger = structlog.get_logger(__name__)

INTER_STATE_RATE_THRESHOLD = Decimal("18")
MIN_JURISDICTION_CODE = 1
MAX_JURISDICTION_CODE = 37

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

REVERSE_CHARGE_THRESHOLD = Decimal("5000")
REVERSE_CHARGE_RATE = Decimal("18")
REVERSE_CHARGE_SERVICES = frozenset({"legal", "consulting", "professional"})

RETURN_DUE_DAY = 20

_HUNDRED = Decimal("100")
_TWO = Decimal("2")


@dataclass(frozen=True)
class TaxBreakdown:
    """Tax split of a single amount at a single rate."""

    base_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    rate: Decimal
    split_a: Decimal
    split_b: Decimal
    inter_state_amount: Decimal

    @property
    def is_inter_state(self) -> bool:
        return self.rate > INTER_STATE_RATE_THRESHOLD

    def to_record(self) -> dict[str, float]:
        """Serialize to the persisted record layout."""
        return {
            "baseAmount": float(self.base_amount),
            "taxAmount": float(self.tax_amount),
            "totalAmount": float(self.total_amount),
            "rate": float(self.rate),
            "cgstEquivalent": float(self.split_a),
            "sgstEquivalent": float(self.split_b),
            "igstEquivalent": float(self.inter_state_amount),
        }


def _split(tax_amount: Decimal, rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    if rate <= INTER_STATE_RATE_THRESHOLD:
        half = quantize_money(tax_amount / _TWO)
        return half, half, ZERO
    return ZERO, ZERO, tax_amount


def _build(base: Decimal, tax: Decimal, total: Decimal, rate: Decimal) -> TaxBreakdown:
    split_a, split_b, inter_state = _split(tax, rate)
    return TaxBreakdown(
        base_amount=base,
        tax_amount=tax,
        total_amount=total,
        rate=rate,
        split_a=split_a,
        split_b=split_b,
        inter_state_amount=inter_state,
    )


def from_inclusive(total_amount: Amount, rate_percent: Amount) -> TaxBreakdown:
    """Back out the tax from an amount that already includes it.

    Args:
        total_amount: Tax-inclusive amount.
        rate_percent: GST rate as a percentage (18 means 18%).

    Raises:
        InvalidInputError: If either value is negative or non-numeric.
    """
    total = quantize_money(to_non_negative(total_amount, "total_amount"))
    rate = to_non_negative(rate_percent, "rate_percent")

    base = quantize_money(total / (1 + rate / _HUNDRED))
    return _build(base, total - base, total, rate)


def from_exclusive(base_amount: Amount, rate_percent: Amount) -> TaxBreakdown:
    """Add tax on top of a tax-exclusive amount.

    Raises:
        InvalidInputError: If either value is negative or non-numeric.
    """
    base = quantize_money(to_non_negative(base_amount, "base_amount"))
    rate = to_non_negative(rate_percent, "rate_percent")

    tax = quantize_money(base * rate / _HUNDRED)
    return _build(base, tax, base + tax, rate)


# =============================================================================
# REGISTRATION (GSTIN)
# =============================================================================


@dataclass(frozen=True)
class RegistrationDetails:
    """A GSTIN that passed validation."""

    gstin: str
    jurisdiction_code: str
    jurisdiction_name: str | None

    @property
    def pan(self) -> str:
        """The embedded 10-character entity (PAN) code."""
        return self.gstin[2:12]


def validate_registration_id(gstin: str | None) -> RegistrationDetails:
    """Validate a GSTIN and return its jurisdiction.

    Raises:
        MissingInputError: If the identifier is empty.
        FormatError: If it does not match the 15-character grammar.
        JurisdictionError: If the leading state code is outside 01-37.
    """
    candidate = (gstin or "").strip()
    if not candidate:
        raise MissingInputError("GSTIN is required")

    if not GSTIN_PATTERN.match(candidate):
        logger.debug("gstin_format_rejected", gstin=candidate)
        raise FormatError(
            "Invalid GSTIN format. Should be 15 characters like 22AAAAA0000A1Z5",
            details={"gstin": candidate},
        )

    code = candidate[:2]
    if not MIN_JURISDICTION_CODE <= int(code) <= MAX_JURISDICTION_CODE:
        logger.debug("gstin_jurisdiction_rejected", gstin=candidate, code=code)
        raise JurisdictionError(
            "Invalid state code in GSTIN",
            details={"gstin": candidate, "jurisdiction_code": code},
        )

    return RegistrationDetails(
        gstin=candidate,
        jurisdiction_code=code,
        jurisdiction_name=load_state_codes().get(code),
    )


def is_valid_registration_id(gstin: str | None) -> bool:
    """Return True if the GSTIN passes every check."""
    try:
        validate_registration_id(gstin)
    except (MissingInputError, FormatError, JurisdictionError):
        return False
    return True


# =============================================================================
# HSN CATEGORY SUGGESTIONS
# =============================================================================


@dataclass(frozen=True)
class CategorySuggestion:
    """An HSN category that matched a free-text description."""

    code: str
    description: str
    suggested_rate: Decimal


def suggest_category(description: str | None) -> list[CategorySuggestion]:
    """Suggest HSN categories for a free-text item description.

    A category matches when either text contains the other, ignoring case.
    Results keep the table order; no match gives an empty list.
    """
    term = (description or "").strip().lower()
    if not term:
        return []

    suggestions: list[CategorySuggestion] = []
    for category in load_hsn_categories():
        name = category.description.lower()
        if term in name or name in term:
            suggestions.append(
                CategorySuggestion(
                    code=category.code,
                    description=category.description,
                    suggested_rate=category.rate,
                )
            )
    return suggestions


# =============================================================================
# INVOICE TOTALS
# =============================================================================


@dataclass(frozen=True)
class InvoiceLine:
    """A single invoice line as entered on the form."""

    description: str
    quantity: Amount | None
    unit_price: Amount | None
    rate: Amount = 0


@dataclass(frozen=True)
class InvoiceTotals:
    """Rounded invoice totals plus the per-line breakdowns."""

    subtotal: Decimal
    total_tax: Decimal
    total: Decimal
    lines: tuple[TaxBreakdown, ...]


def compute_invoice_totals(items: Iterable[InvoiceLine]) -> InvoiceTotals:
    """Sum invoice lines into subtotal, tax and grand total.

    Lines without a quantity or price are skipped. Sums are kept unrounded
    and rounded once at the end.
    """
    subtotal = ZERO
    total_tax = ZERO
    breakdowns: list[TaxBreakdown] = []

    for item in items:
        if not item.quantity or not item.unit_price:
            continue
        quantity = to_non_negative(item.quantity, "quantity")
        price = to_non_negative(item.unit_price, "unit_price")
        rate = to_non_negative(item.rate or 0, "rate")

        line_amount = quantity * price
        subtotal += line_amount
        total_tax += line_amount * rate / _HUNDRED
        breakdowns.append(from_exclusive(line_amount, rate))

    subtotal = quantize_money(subtotal)
    total_tax = quantize_money(total_tax)
    return InvoiceTotals(
        subtotal=subtotal,
        total_tax=total_tax,
        total=subtotal + total_tax,
        lines=tuple(breakdowns),
    )


# =============================================================================
# COMPLIANCE CALENDAR
# =============================================================================


@dataclass(frozen=True)
class ReturnDueDates:
    """Filing deadlines for one monthly return period."""

    gstr1: date
    gstr3b: date
    gstr1_overdue: bool
    gstr3b_overdue: bool


def return_due_dates(month: int, year: int, today: date | None = None) -> ReturnDueDates:
    """Due dates of the GSTR-1 and GSTR-3B returns for a period.

    Args:
        month: Return period month (1-12).
        year: Return period year.
        today: Reference date for the overdue flags. Defaults to today.
    """
    if not 1 <= month <= 12:
        raise InvalidInputError(f"month must be 1-12, got {month}", details={"month": month})
    today = today or date.today()

    gstr1 = date(*add_months(year, month, 1), RETURN_DUE_DAY)
    gstr3b = date(*add_months(year, month, 2), RETURN_DUE_DAY)
    return ReturnDueDates(
        gstr1=gstr1,
        gstr3b=gstr3b,
        gstr1_overdue=today > gstr1,
        gstr3b_overdue=today > gstr3b,
    )


# =============================================================================
# REVERSE CHARGE
# =============================================================================


@dataclass(frozen=True)
class ReverseCharge:
    """Whether the buyer must self-assess tax on a purchase."""

    applicable: bool
    tax_amount: Decimal
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "applicable": self.applicable,
            "tax_amount": str(self.tax_amount),
            "reason": self.reason,
        }


def reverse_charge(
    vendor_gstin: str | None,
    buyer_gstin: str | None,
    amount: Amount,
    service_type: str | None,
) -> ReverseCharge:
    """Check reverse-charge applicability for a purchase.

    Applies when an unregistered vendor bills a registered buyer more than
    5,000 for legal, consulting or professional services.
    """
    value = to_decimal(amount)
    service = (service_type or "").strip().lower()

    if (
        not vendor_gstin
        and buyer_gstin
        and value > REVERSE_CHARGE_THRESHOLD
        and service in REVERSE_CHARGE_SERVICES
    ):
        return ReverseCharge(
            applicable=True,
            tax_amount=quantize_money(value * REVERSE_CHARGE_RATE / _HUNDRED),
            reason="Unregistered vendor providing professional services above ₹5,000",
        )

    return ReverseCharge(applicable=False, tax_amount=ZERO)
