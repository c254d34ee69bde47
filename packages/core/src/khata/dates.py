"""Calendar helpers: month scopes and the April-March financial year."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any


def parse_date(value: Any) -> date | None:
    """Coerce a date, datetime or ISO string into a date; None if unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def start_of_month(on: date) -> date:
    return on.replace(day=1)


def start_of_next_month(on: date) -> date:
    if on.month == 12:
        return date(on.year + 1, 1, 1)
    return date(on.year, on.month + 1, 1)


def month_key(on: date) -> str:
    """``YYYYMM`` key of the month containing ``on``."""
    return f"{on.year:04d}{on.month:02d}"


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def financial_year(on: date) -> str:
    """Indian financial year label (April to March), e.g. ``"2024-2025"``."""
    start = on.year if on.month >= 4 else on.year - 1
    return f"{start}-{start + 1}"


def financial_quarter(on: date) -> int:
    """Quarter of the financial year; Q1 is April to June."""
    fiscal_month = (on.month - 4) % 12
    return fiscal_month // 3 + 1
