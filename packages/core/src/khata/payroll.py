"""Statutory payroll calculation.

Allowances and deductions are fixed fractions of the base salary. Figures
are left unrounded so that ``net + total_deductions == gross`` holds exactly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog

from khata.config.settings import get_settings
from khata.errors import InvalidInputError
from khata.money import ZERO, Amount, sum_amounts, to_decimal, to_non_negative

logger = structlog.get_logger(__name__)

DEFAULT_WORKING_DAYS = 30


@dataclass(frozen=True)
class StatutoryRates:
    """Percentages (as fractions) and thresholds used by the calculator."""

    housing_allowance: Decimal = Decimal("0.40")
    dearness_allowance: Decimal = Decimal("0.10")
    provident_fund: Decimal = Decimal("0.12")
    state_insurance: Decimal = Decimal("0.0175")
    withholding: Decimal = Decimal("0.10")
    withholding_threshold: Decimal = Decimal("25000")

    @classmethod
    def from_settings(cls) -> StatutoryRates:
        """Build rates from settings overrides."""
        settings = get_settings()
        return cls(
            housing_allowance=settings.housing_allowance_rate,
            dearness_allowance=settings.dearness_allowance_rate,
            provident_fund=settings.provident_fund_rate,
            state_insurance=settings.state_insurance_rate,
            withholding=settings.withholding_rate,
            withholding_threshold=settings.withholding_threshold,
        )


@dataclass(frozen=True)
class Allowances:
    housing: Decimal
    dearness: Decimal
    other: Decimal

    @property
    def total(self) -> Decimal:
        return self.housing + self.dearness + self.other


@dataclass(frozen=True)
class Deductions:
    provident_fund: Decimal
    state_insurance: Decimal
    income_tax_withholding: Decimal
    other: Decimal

    @property
    def total(self) -> Decimal:
        return (
            self.provident_fund
            + self.state_insurance
            + self.income_tax_withholding
            + self.other
        )


@dataclass(frozen=True)
class PayrollRecord:
    """Full payroll breakdown for one employee and one pay period."""

    base_salary: Decimal
    allowances: Allowances
    gross_salary: Decimal
    deductions: Deductions
    total_deductions: Decimal
    net_salary: Decimal
    working_days: int
    leave_days: int

    def to_record(self) -> dict[str, Any]:
        """Serialize for storage; amounts as strings to keep precision."""
        return {
            "baseSalary": str(self.base_salary),
            "allowances": {
                "housing": str(self.allowances.housing),
                "dearness": str(self.allowances.dearness),
                "other": str(self.allowances.other),
            },
            "grossSalary": str(self.gross_salary),
            "deductions": {
                "providentFund": str(self.deductions.provident_fund),
                "stateInsurance": str(self.deductions.state_insurance),
                "incomeTaxWithholding": str(self.deductions.income_tax_withholding),
                "other": str(self.deductions.other),
            },
            "totalDeductions": str(self.total_deductions),
            "netSalary": str(self.net_salary),
            "workingDays": self.working_days,
            "leaveDays": self.leave_days,
        }


def _check_days(working_days: int, leave_days: int) -> None:
    if working_days < 0 or leave_days < 0:
        raise InvalidInputError(
            "Working and leave days cannot be negative",
            details={"working_days": working_days, "leave_days": leave_days},
        )
    if leave_days > working_days:
        raise InvalidInputError(
            "Leave days cannot exceed working days",
            details={"working_days": working_days, "leave_days": leave_days},
        )


def compute(
    base_salary: Amount,
    other_allowances: Amount = 0,
    other_deductions: Amount = 0,
    working_days: int = DEFAULT_WORKING_DAYS,
    leave_days: int = 0,
    rates: StatutoryRates | None = None,
) -> PayrollRecord:
    """Derive gross, deductions and net pay from a base salary.

    Args:
        base_salary: Monthly base salary; must be positive.
        other_allowances: Manually entered extra allowances.
        other_deductions: Manually entered extra deductions.
        working_days: Working days in the period.
        leave_days: Leave days taken in the period.
        rates: Statutory rates. Defaults to the fixed statutory values.

    Raises:
        InvalidInputError: On non-positive base salary, negative adjustments
            or days, or deductions larger than gross pay.
    """
    rates = rates or StatutoryRates()
    base = to_decimal(base_salary, "base_salary")
    if base <= 0:
        raise InvalidInputError(
            "Base salary must be greater than zero", details={"base_salary": str(base)}
        )
    extra_allowances = to_non_negative(other_allowances, "other_allowances")
    extra_deductions = to_non_negative(other_deductions, "other_deductions")
    _check_days(working_days, leave_days)

    allowances = Allowances(
        housing=base * rates.housing_allowance,
        dearness=base * rates.dearness_allowance,
        other=extra_allowances,
    )
    gross = base + allowances.total

    withholding = (
        base * rates.withholding if base > rates.withholding_threshold else ZERO
    )
    deductions = Deductions(
        provident_fund=base * rates.provident_fund,
        state_insurance=base * rates.state_insurance,
        income_tax_withholding=withholding,
        other=extra_deductions,
    )
    total_deductions = deductions.total

    net = gross - total_deductions
    if net < 0:
        raise InvalidInputError(
            "Deductions exceed gross salary",
            details={"gross_salary": str(gross), "total_deductions": str(total_deductions)},
        )

    return PayrollRecord(
        base_salary=base,
        allowances=allowances,
        gross_salary=gross,
        deductions=deductions,
        total_deductions=total_deductions,
        net_salary=net,
        working_days=working_days,
        leave_days=leave_days,
    )


class StatutoryPayrollCalculator:
    """Payroll calculator bound to a set of statutory rates."""

    def __init__(self, rates: StatutoryRates | None = None) -> None:
        self.rates = rates or StatutoryRates()
        self._logger = logger.bind(component="payroll_calculator")

    @classmethod
    def from_settings(cls) -> StatutoryPayrollCalculator:
        return cls(StatutoryRates.from_settings())

    def compute(
        self,
        base_salary: Amount,
        other_allowances: Amount = 0,
        other_deductions: Amount = 0,
        working_days: int = DEFAULT_WORKING_DAYS,
        leave_days: int = 0,
    ) -> PayrollRecord:
        record = compute(
            base_salary,
            other_allowances,
            other_deductions,
            working_days=working_days,
            leave_days=leave_days,
            rates=self.rates,
        )
        self._logger.debug(
            "payroll_computed",
            gross=str(record.gross_salary),
            net=str(record.net_salary),
        )
        return record


@dataclass(frozen=True)
class PayrollSummary:
    """Totals across a payroll run."""

    employee_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal


def summarize_payroll(records: Iterable[PayrollRecord]) -> PayrollSummary:
    """Aggregate a payroll run for the dashboard."""
    items = list(records)
    return PayrollSummary(
        employee_count=len(items),
        total_gross=sum_amounts(r.gross_salary for r in items),
        total_deductions=sum_amounts(r.total_deductions for r in items),
        total_net=sum_amounts(r.net_salary for r in items),
    )
