"""Tests for configuration settings."""

import os
from datetime import date
from decimal import Decimal

import pytest


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    # Import after env vars are set in conftest
    from khata.config.settings import get_settings

    # Clear the cache to force reload
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.store_api_key.get_secret_value() == "store-test-key"
    assert settings.store_url == "http://localhost:8080"


def test_settings_has_defaults():
    """Test that settings has sensible defaults."""
    from khata.config.settings import get_settings

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.store_timeout == 30.0
    assert settings.store_max_retries == 3
    assert settings.housing_allowance_rate == Decimal("0.40")
    assert settings.provident_fund_rate == Decimal("0.12")
    assert settings.state_insurance_rate == Decimal("0.0175")
    assert settings.withholding_threshold == Decimal("25000")
    assert settings.match_window_days == 7
    assert settings.numbering_max_attempts == 5


def test_settings_env_override(monkeypatch):
    """Test that statutory rates can be overridden from the environment."""
    from khata.config.settings import get_settings

    monkeypatch.setenv("KHATA_PROVIDENT_FUND_RATE", "0.10")
    monkeypatch.setenv("KHATA_MATCH_WINDOW_DAYS", "3")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.provident_fund_rate == Decimal("0.10")
        assert settings.match_window_days == 3
    finally:
        get_settings.cache_clear()


def test_settings_are_cached():
    """Test that get_settings returns cached instance."""
    from khata.config.settings import get_settings

    get_settings.cache_clear()

    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2


def test_settings_load_without_store_key(monkeypatch):
    """Test that the store key is optional until the HTTP store is used."""
    from khata.config.settings import get_settings

    monkeypatch.delenv("KHATA_STORE_API_KEY", raising=False)
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.store_api_key is None
        assert settings.timezone == "Asia/Kolkata"
    finally:
        get_settings.cache_clear()


@pytest.mark.asyncio
async def test_in_memory_paths_run_without_store_configuration(monkeypatch):
    """Test numbering and reconciliation against the memory store with no KHATA_* env."""
    from khata.config.settings import get_settings
    from khata.numbering import DocumentNumberer
    from khata.reconciliation import BankTransaction, Direction, propose_matches
    from khata.store.memory import InMemoryDocumentStore

    for key in list(os.environ):
        if key.startswith("KHATA_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    try:
        store = InMemoryDocumentStore()
        number, _ = await DocumentNumberer(store).create_numbered(
            "owner-1", "INV", {"total": 1180}, as_of=date(2024, 1, 8)
        )
        proposals = await propose_matches(
            store,
            "owner-1",
            [BankTransaction("t1", "1180", date(2024, 1, 9), Direction.CREDIT)],
        )
    finally:
        get_settings.cache_clear()

    assert number == "INV-202401-001"
    assert [p.entry.display_number for p in proposals] == ["INV-202401-001"]
