"""Utilities for loading GST reference data from the packaged YAML file."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

REFERENCE_PATH = Path(__file__).resolve().parent / "reference" / "gst.yaml"


@dataclass(frozen=True)
class HSNCategory:
    """One row of the HSN category table."""

    code: str
    description: str
    rate: Decimal


@dataclass(frozen=True)
class RateSlab:
    """A GST rate slab with a short description."""

    rate: Decimal
    description: str
    examples: tuple[str, ...] = ()


@lru_cache
def _load_reference() -> dict[str, Any]:
    raw = REFERENCE_PATH.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{REFERENCE_PATH.name}: top level must be a mapping")
    return data


def _parse_rate(value: Any, context: str) -> Decimal:
    try:
        rate = Decimal(str(value))
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise ValueError(f"{REFERENCE_PATH.name}: invalid rate for {context}: {value!r}") from exc
    if rate < 0:
        raise ValueError(f"{REFERENCE_PATH.name}: negative rate for {context}: {rate}")
    return rate


@lru_cache
def load_hsn_categories() -> tuple[HSNCategory, ...]:
    """Load the HSN category table in file order.

    Returns:
        Tuple of categories; order is significant for suggestions.
    """
    entries = _load_reference().get("hsn_categories") or []
    if not isinstance(entries, list):
        raise ValueError(f"{REFERENCE_PATH.name}: hsn_categories must be a list")

    categories: list[HSNCategory] = []
    for idx, item in enumerate(entries):
        if not isinstance(item, dict):
            raise ValueError(f"{REFERENCE_PATH.name}: hsn_categories[{idx}] must be a mapping")
        code = str(item.get("code", "")).strip()
        description = str(item.get("description", "")).strip()
        if not code or not description:
            raise ValueError(
                f"{REFERENCE_PATH.name}: hsn_categories[{idx}] needs code and description"
            )
        categories.append(
            HSNCategory(
                code=code,
                description=description,
                rate=_parse_rate(item.get("rate"), f"HSN {code}"),
            )
        )
    return tuple(categories)


@lru_cache
def load_rate_slabs() -> tuple[RateSlab, ...]:
    """Load the GST rate slabs, ascending by rate."""
    raw_slabs = _load_reference().get("rate_slabs") or {}
    if not isinstance(raw_slabs, dict):
        raise ValueError(f"{REFERENCE_PATH.name}: rate_slabs must be a mapping")

    slabs = [
        RateSlab(
            rate=_parse_rate(rate, "rate slab"),
            description=str((info or {}).get("description", "")),
            examples=tuple(str(e) for e in (info or {}).get("examples", [])),
        )
        for rate, info in raw_slabs.items()
    ]
    return tuple(sorted(slabs, key=lambda slab: slab.rate))


@lru_cache
def load_state_codes() -> dict[str, str]:
    """Load the mapping of two-digit jurisdiction code to state name."""
    states = _load_reference().get("states") or {}
    if not isinstance(states, dict):
        raise ValueError(f"{REFERENCE_PATH.name}: states must be a mapping")
    return {str(code).zfill(2): str(name) for code, name in states.items()}
