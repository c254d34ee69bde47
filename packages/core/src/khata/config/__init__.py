"""Configuration module for the Khata computation core."""

from khata.config.logging import configure_logging, get_logger
from khata.config.reference_loader import (
    HSNCategory,
    RateSlab,
    load_hsn_categories,
    load_rate_slabs,
    load_state_codes,
)
from khata.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "HSNCategory",
    "RateSlab",
    "load_hsn_categories",
    "load_rate_slabs",
    "load_state_codes",
]
