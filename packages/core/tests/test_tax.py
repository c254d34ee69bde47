"""Tests for GST calculations and registration validation."""

from datetime import date
from decimal import Decimal

import pytest

from khata.errors import (
    FormatError,
    InvalidInputError,
    JurisdictionError,
    MissingInputError,
    ValidationError,
)
from khata.tax import (
    InvoiceLine,
    compute_invoice_totals,
    from_exclusive,
    from_inclusive,
    is_valid_registration_id,
    return_due_dates,
    reverse_charge,
    suggest_category,
    validate_registration_id,
)

VALID_GSTIN = "22AAAAA0000A1Z5"


class TestFromInclusive:
    """Tests for backing tax out of an inclusive amount."""

    def test_standard_rate_splits_into_halves(self):
        breakdown = from_inclusive(1180, 18)

        assert breakdown.base_amount == Decimal("1000.00")
        assert breakdown.tax_amount == Decimal("180.00")
        assert breakdown.total_amount == Decimal("1180.00")
        assert breakdown.split_a == Decimal("90.00")
        assert breakdown.split_b == Decimal("90.00")
        assert breakdown.inter_state_amount == Decimal("0")
        assert not breakdown.is_inter_state

    def test_rate_above_18_is_inter_state(self):
        breakdown = from_inclusive(100, 28)

        assert breakdown.base_amount == Decimal("78.13")
        assert breakdown.tax_amount == Decimal("21.87")
        assert breakdown.inter_state_amount == Decimal("21.87")
        assert breakdown.split_a == Decimal("0")
        assert breakdown.split_b == Decimal("0")
        assert breakdown.is_inter_state

    def test_base_plus_tax_equals_total(self):
        for total in ("0.01", "99.99", "1234.57", "100000"):
            for rate in (0, 5, 12, 18, 28):
                breakdown = from_inclusive(total, rate)
                assert breakdown.base_amount + breakdown.tax_amount == breakdown.total_amount

    def test_zero_rate_has_no_tax(self):
        breakdown = from_inclusive("500", 0)

        assert breakdown.base_amount == Decimal("500.00")
        assert breakdown.tax_amount == Decimal("0.00")

    def test_rejects_negative_amount(self):
        with pytest.raises(InvalidInputError):
            from_inclusive(-1, 18)

    def test_rejects_non_numeric_rate(self):
        with pytest.raises(InvalidInputError):
            from_inclusive(100, "eighteen")


class TestFromExclusive:
    """Tests for adding tax on top of a base amount."""

    def test_standard_rate(self):
        breakdown = from_exclusive(1000, 18)

        assert breakdown.tax_amount == Decimal("180.00")
        assert breakdown.total_amount == Decimal("1180.00")

    def test_rounds_half_up(self):
        breakdown = from_exclusive("99.99", 5)

        assert breakdown.tax_amount == Decimal("5.00")
        assert breakdown.total_amount == Decimal("104.99")
        assert breakdown.split_a == Decimal("2.50")

    def test_exactly_18_stays_intra_state(self):
        assert not from_exclusive(100, 18).is_inter_state
        assert from_exclusive(100, "18.01").is_inter_state

    def test_split_halves_within_a_paisa_of_tax(self):
        breakdown = from_exclusive("0.05", 18)

        assert breakdown.tax_amount == Decimal("0.01")
        assert abs(breakdown.split_a + breakdown.split_b - breakdown.tax_amount) <= Decimal(
            "0.01"
        )

    def test_only_one_split_kind_is_populated(self):
        for rate in (5, 12, 18, 28):
            breakdown = from_exclusive("1234.56", rate)
            if breakdown.inter_state_amount:
                assert breakdown.split_a == breakdown.split_b == 0
            else:
                assert breakdown.split_a == breakdown.split_b

    def test_rejects_negative_base(self):
        with pytest.raises(InvalidInputError):
            from_exclusive("-0.01", 5)

    def test_to_record_uses_persisted_field_names(self):
        record = from_inclusive(1180, 18).to_record()

        assert record == {
            "baseAmount": 1000.0,
            "taxAmount": 180.0,
            "totalAmount": 1180.0,
            "rate": 18.0,
            "cgstEquivalent": 90.0,
            "sgstEquivalent": 90.0,
            "igstEquivalent": 0.0,
        }


class TestRegistrationValidation:
    """Tests for GSTIN validation."""

    def test_valid_gstin_returns_jurisdiction(self):
        details = validate_registration_id(VALID_GSTIN)

        assert details.jurisdiction_code == "22"
        assert details.jurisdiction_name == "Chhattisgarh"
        assert details.pan == "AAAAA0000A"

    def test_surrounding_whitespace_is_ignored(self):
        assert validate_registration_id(f"  {VALID_GSTIN} ").gstin == VALID_GSTIN

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_missing(self, value):
        with pytest.raises(MissingInputError):
            validate_registration_id(value)

    @pytest.mark.parametrize(
        "value",
        [
            "22AAAAA0000A1Z",  # too short
            "22aaaaa0000a1z5",  # lower case
            "22AAAAA0000A0Z5",  # entity digit 0
            "22AAAAA0000A1X5",  # 14th char must be Z
            "2AAAAAA0000A1Z5",
        ],
    )
    def test_bad_format(self, value):
        with pytest.raises(FormatError):
            validate_registration_id(value)

    @pytest.mark.parametrize("code", ["00", "38", "99"])
    def test_unknown_jurisdiction(self, code):
        with pytest.raises(JurisdictionError):
            validate_registration_id(f"{code}AAAAA0000A1Z5")

    @pytest.mark.parametrize("code", ["01", "37"])
    def test_jurisdiction_boundaries_accepted(self, code):
        assert validate_registration_id(f"{code}AAAAA0000A1Z5").jurisdiction_code == code

    def test_errors_are_validation_errors(self):
        with pytest.raises(ValidationError):
            validate_registration_id("bad")

    def test_is_valid_registration_id(self):
        assert is_valid_registration_id(VALID_GSTIN)
        assert not is_valid_registration_id("38AAAAA0000A1Z5")
        assert not is_valid_registration_id("")


class TestSuggestCategory:
    """Tests for HSN category suggestions."""

    def test_term_inside_description(self):
        suggestions = suggest_category("laptop")

        assert [s.code for s in suggestions] == ["8471"]
        assert suggestions[0].suggested_rate == Decimal("18")

    def test_multiple_matches_keep_table_order(self):
        codes = [s.code for s in suggest_category("Services")]

        assert codes == ["9983", "9954", "9991"]

    def test_description_inside_term(self):
        codes = [s.code for s in suggest_category("Office furniture set")]

        assert codes == ["9403"]

    def test_no_match_is_empty(self):
        assert suggest_category("spaceship") == []

    def test_blank_is_empty(self):
        assert suggest_category("") == []
        assert suggest_category(None) == []


def test_invoice_totals_skip_incomplete_lines():
    totals = compute_invoice_totals(
        [
            InvoiceLine("Laptop", 2, "500", 18),
            InvoiceLine("Notebooks", 1, "100.50", 12),
            InvoiceLine("No quantity", None, 100, 18),
            InvoiceLine("No price", 3, 0, 5),
        ]
    )

    assert totals.subtotal == Decimal("1100.50")
    assert totals.total_tax == Decimal("192.06")
    assert totals.total == Decimal("1292.56")
    assert len(totals.lines) == 2
    assert totals.lines[0].tax_amount == Decimal("180.00")


def test_invoice_totals_empty():
    totals = compute_invoice_totals([])

    assert totals.total == Decimal("0.00")
    assert totals.lines == ()


class TestReturnDueDates:
    """Tests for the GST return calendar."""

    def test_due_dates_and_overdue_flags(self):
        due = return_due_dates(3, 2024, today=date(2024, 4, 25))

        assert due.gstr1 == date(2024, 4, 20)
        assert due.gstr3b == date(2024, 5, 20)
        assert due.gstr1_overdue
        assert not due.gstr3b_overdue

    def test_december_rolls_into_next_year(self):
        due = return_due_dates(12, 2024, today=date(2024, 12, 31))

        assert due.gstr1 == date(2025, 1, 20)
        assert due.gstr3b == date(2025, 2, 20)
        assert not due.gstr1_overdue

    def test_invalid_month(self):
        with pytest.raises(InvalidInputError):
            return_due_dates(13, 2024)


class TestReverseCharge:
    """Tests for reverse-charge applicability."""

    def test_unregistered_vendor_professional_service(self):
        result = reverse_charge(None, VALID_GSTIN, 10000, "Legal")

        assert result.applicable
        assert result.tax_amount == Decimal("1800.00")
        assert result.to_dict()["tax_amount"] == "1800.00"

    def test_threshold_is_exclusive(self):
        assert not reverse_charge(None, VALID_GSTIN, 5000, "legal").applicable

    def test_registered_vendor(self):
        result = reverse_charge(VALID_GSTIN, VALID_GSTIN, 10000, "consulting")

        assert not result.applicable
        assert result.tax_amount == Decimal("0")
        assert result.reason is None

    def test_goods_are_not_covered(self):
        assert not reverse_charge(None, VALID_GSTIN, 10000, "goods").applicable


@pytest.mark.parametrize("rate", ["0", "0.25", "3", "5", "12", "18", "28", "40"])
@pytest.mark.parametrize(
    "amount", ["0", "0.01", "0.99", "1", "99.99", "1234.56", "100000.49", "9999999.99"]
)
def test_exclusive_total_round_trips_to_base(amount, rate):
    total = from_exclusive(amount, rate).total_amount

    recovered = from_inclusive(total, rate).base_amount

    assert abs(recovered - Decimal(amount)) <= Decimal("0.01")


@pytest.mark.parametrize("amount", ["1e30", "9" * 30])
def test_amounts_beyond_decimal_precision_are_rejected(amount):
    with pytest.raises(InvalidInputError):
        from_exclusive(amount, 18)
    with pytest.raises(InvalidInputError):
        from_inclusive(amount, 5)
