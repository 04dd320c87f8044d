import asyncio
import os
from collections.abc import Sequence
from typing import Any

import httpx

from household_categorizer.errors import ImportSubmissionError
from household_categorizer.logger import get_logger
from household_categorizer.models import TransactionRecord

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class LedgerClient:
    """Client for the household ledger REST API that stores imported rows."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or os.getenv("LEDGER_API_URL") or "").rstrip("/") or None
        self.token = token or os.getenv("LEDGER_API_TOKEN")
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            # Another task may have created it while we waited
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient(timeout=self.timeout)
                self._client = client
            return client

    async def get_transactions(self) -> list[dict[str, Any]]:
        if not self.configured:
            logger.error("Ledger API URL missing.")
            return []

        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.base_url}/api/transactions",
                headers=self.headers,
            )
            response.raise_for_status()
            data = response.json()
        except Exception as exc:
            logger.error("Error fetching ledger transactions: %s", exc)
            return []

        if not isinstance(data, list):
            logger.warning("Unexpected ledger transactions payload: %s", type(data).__name__)
            return []
        return data

    async def get_import_hashes(self) -> set[str]:
        transactions = await self.get_transactions()
        return {str(t["importHash"]) for t in transactions if isinstance(t, dict) and t.get("importHash")}

    async def submit_batch(self, records: Sequence[TransactionRecord]) -> dict[str, Any]:
        """Send accepted rows as one batch. Raises ImportSubmissionError on any failure."""
        if not self.configured:
            raise ImportSubmissionError("Ledger API is not configured")

        payload = {
            "transactions": [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in records]
        }
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/api/transactions/batch",
                headers=self.headers,
                json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error("Ledger rejected import batch of %d rows: %s", len(records), exc)
            raise ImportSubmissionError(f"Ledger rejected the import ({status_code})", status_code=status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Error sending import batch: %s", exc)
            raise ImportSubmissionError(f"Could not reach the ledger: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            logger.warning("Ledger accepted the batch but returned no JSON body.")
            return {}
        return data if isinstance(data, dict) else {}
