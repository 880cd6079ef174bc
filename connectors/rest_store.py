"""
Module: connectors.rest_store

Store boundary backed by a hosted PostgREST-style API (``/rest/v1``), called
with httpx. Only the small subset of the REST dialect the services need is
spoken here: equality filters, ordering, embedded joins, representation on
write, and one RPC for atomic increments.
"""

import logging
from typing import Any

import httpx

from connectors.base import InventoryStore, Row
from models.exceptions import RecordNotFoundError, StoreError

logger = logging.getLogger(__name__)

# Server-side SQL function performing `column = column + amount` in one statement
DEFAULT_INCREMENT_FUNCTION = "increment_column"


class RestInventoryStore(InventoryStore):
    """Async REST client for the hosted table store."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        increment_function: str = DEFAULT_INCREMENT_FUNCTION,
    ):
        if not base_url:
            raise ValueError("base_url is required for RestInventoryStore")
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self.access_token = access_token
        self.increment_function = increment_function
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- Request plumbing --- #

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        url = f"{self.rest_url}/{path}"
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=self._headers(prefer)
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = f"{exc.response.status_code} {exc.response.text[:200]}"
            logger.error(f"Store request {method} {path} failed: {detail}")
            raise StoreError(f"Store request {method} {path} failed: {detail}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Store request {method} {path} failed: {type(exc).__name__}: {exc}")
            raise StoreError(f"Store unreachable during {method} {path}: {exc}") from exc
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _select_clause(embed: dict[str, str] | None) -> str:
        parts = ["*"]
        for alias, target in (embed or {}).items():
            parts.append(f"{alias}:{target}(*)")
        return ",".join(parts)

    @staticmethod
    def _eq(value: Any) -> str:
        if value is None:
            return "is.null"
        if isinstance(value, bool):
            return f"eq.{str(value).lower()}"
        return f"eq.{value}"

    def _filter_params(self, filters: dict[str, Any] | None) -> dict[str, str]:
        return {column: self._eq(value) for column, value in (filters or {}).items()}

    # --- InventoryStore --- #

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        embed: dict[str, str] | None = None,
    ) -> list[Row]:
        params = {"select": self._select_clause(embed), **self._filter_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        data = await self._request("GET", table, params=params)
        return data or []

    async def get(
        self, table: str, record_id: str, embed: dict[str, str] | None = None
    ) -> Row | None:
        rows = await self.select(table, filters={"id": record_id}, embed=embed)
        return rows[0] if rows else None

    async def insert(
        self, table: str, row: Row, embed: dict[str, str] | None = None
    ) -> Row:
        data = await self._request(
            "POST",
            table,
            params={"select": self._select_clause(embed)},
            json=row,
            prefer="return=representation",
        )
        if not data:
            raise StoreError(f"Insert into {table} returned no representation")
        return data[0] if isinstance(data, list) else data

    async def update(
        self,
        table: str,
        record_id: str,
        changes: Row,
        match: dict[str, Any] | None = None,
    ) -> Row | None:
        params = self._filter_params({**(match or {}), "id": record_id})
        data = await self._request(
            "PATCH", table, params=params, json=changes, prefer="return=representation"
        )
        if data:
            return data[0] if isinstance(data, list) else data
        if match:
            # Either the row is gone or it no longer matches; tell them apart
            if await self.get(table, record_id) is None:
                raise RecordNotFoundError(f"{table} record {record_id} not found")
            return None
        raise RecordNotFoundError(f"{table} record {record_id} not found")

    async def delete(self, table: str, record_id: str) -> None:
        data = await self._request(
            "DELETE",
            table,
            params=self._filter_params({"id": record_id}),
            prefer="return=representation",
        )
        if not data:
            raise RecordNotFoundError(f"{table} record {record_id} not found")

    async def increment(
        self, table: str, record_id: str, column: str, amount: int
    ) -> Row:
        data = await self._request(
            "POST",
            f"rpc/{self.increment_function}",
            json={
                "target_table": table,
                "row_id": record_id,
                "column_name": column,
                "amount": amount,
            },
        )
        if not data:
            raise RecordNotFoundError(f"{table} record {record_id} not found")
        return data[0] if isinstance(data, list) else data
