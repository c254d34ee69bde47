"""HTTP client for the hosted document store."""

import asyncio
from datetime import date
from typing import Any, cast

import httpx
import structlog

from khata.config import get_settings
from khata.errors import (
    DuplicateDocumentError,
    InvalidInputError,
    StoreError,
    StoreUnavailableError,
)
from khata.reconciliation import EntryKind, LedgerEntry, ledger_entry_from_document
from khata.store.base import NUMBER_FIELD

logger = structlog.get_logger(__name__)


class DocumentStoreClient:
    """Async client for the document store REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.store_url).rstrip("/")
        if api_key is None and settings.store_api_key is not None:
            api_key = settings.store_api_key.get_secret_value()
        if not api_key:
            raise StoreError("Document store API key is not configured (KHATA_STORE_API_KEY)")
        self._api_key = api_key
        self._timeout = timeout if timeout is not None else settings.store_timeout
        self._max_retries = (
            max_retries if max_retries is not None else settings.store_max_retries
        )
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DocumentStoreClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make an authenticated request, retrying transport failures."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                logger.warning(
                    "store_request_retry", path=path, attempt=retry_count + 1, error=str(e)
                )
                await asyncio.sleep(2**retry_count)
                return await self._request(method, path, params, json, retry_count + 1)
            raise StoreUnavailableError(f"Request failed: {e}") from e

        if response.status_code == 409:
            raise DuplicateDocumentError(
                "Document already exists",
                status_code=409,
                details=self._error_detail(response),
            )

        if response.status_code >= 400:
            raise StoreError(
                f"Store error: {response.status_code}",
                status_code=response.status_code,
                details=self._error_detail(response),
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(
                "Invalid JSON response from store",
                status_code=response.status_code,
                details={"raw": response.text[:500] if response.text else "empty response"},
            ) from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> Any:
        try:
            return response.json() if response.content else {}
        except ValueError:
            return {"raw": response.text[:500] if response.text else "empty response"}

    @staticmethod
    def _extract_items(result: Any) -> list[dict[str, Any]]:
        """Return list of items from a list or paged response."""
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            items = result.get("items")
            if isinstance(items, list):
                return items
        return []

    @staticmethod
    def _expect_int(result: Any, key: str) -> int:
        if not isinstance(result, dict):
            raise StoreError(f"Invalid {key} response format")
        try:
            return int(cast(dict[str, Any], result)[key])
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Invalid {key} response format", details=result) from e

    # === Persistence contract ===

    async def count_documents(
        self, owner_id: str, prefix: str, start: date, end: date
    ) -> int:
        """Count ``prefix`` documents for the owner created in ``[start, end)``."""
        result = await self._request(
            "GET",
            f"/api/v1/documents/{prefix}/count",
            params={
                "owner_id": owner_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )
        return self._expect_int(result, "count")

    async def list_ledger_entries(
        self, owner_id: str, start: date, end: date
    ) -> list[LedgerEntry]:
        """Read the owner's sales and expenses dated in ``[start, end)``."""
        result = await self._request(
            "GET",
            "/api/v1/ledger-entries",
            params={
                "owner_id": owner_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )

        entries: list[LedgerEntry] = []
        for item in self._extract_items(result):
            try:
                kind = EntryKind(str(item.get("kind", "")).lower())
                entries.append(ledger_entry_from_document(kind, item))
            except (ValueError, InvalidInputError):
                logger.warning("ledger_entry_skipped", id=item.get("id"))
                continue
        return entries

    async def insert_unique(
        self, prefix: str, number: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a document; the store rejects a taken number with 409."""
        result = await self._request(
            "POST",
            f"/api/v1/documents/{prefix}",
            json={**document, NUMBER_FIELD: number},
        )
        return result if isinstance(result, dict) else {}

    async def reserve_sequence(self, owner_id: str, prefix: str, month_key: str) -> int:
        """Atomically increment and read the (owner, prefix, month) counter."""
        result = await self._request(
            "POST",
            "/api/v1/sequences/reserve",
            json={"owner_id": owner_id, "prefix": prefix, "month_key": month_key},
        )
        return self._expect_int(result, "sequence")
