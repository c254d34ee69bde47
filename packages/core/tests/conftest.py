"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("KHATA_STORE_API_KEY", "store-test-key")
os.environ.setdefault("KHATA_STORE_URL", "http://localhost:8080")

from khata.store.memory import InMemoryDocumentStore, InMemorySequenceStore  # noqa: E402


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def memory_store():
    """Empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def sequence_store():
    """In-memory store that also reserves sequences."""
    return InMemorySequenceStore()


@pytest.fixture
def mock_invoice_document():
    """Invoice document as stored by the invoice form."""
    return {
        "id": "inv-1",
        "userId": "owner-1",
        "invoiceNumber": "INV-202401-001",
        "total": 1180.0,
        "createdAt": "2024-01-08T10:15:00Z",
    }


@pytest.fixture
def mock_expense_document():
    """Expense document as stored by the expense form."""
    return {
        "id": "exp-1",
        "userId": "owner-1",
        "expenseNumber": "EXP-202401-001",
        "totalAmount": "2500.00",
        "date": "2024-01-10",
    }
