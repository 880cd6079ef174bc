"""
Module: connectors.memory_store

In-memory implementation of the store boundary, used by the demo API and the
test-suite. It mimics the relational backend closely enough to exercise the
services: foreign keys, non-negative stock checks, joins, compare-and-set
updates and atomic increments.
"""

import asyncio
import copy
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from connectors.base import (
    PRODUCTS,
    REPLENISHMENT_REQUESTS,
    SALES,
    SUPPLIERS,
    InventoryStore,
    Row,
)
from models.exceptions import RecordNotFoundError, StoreError

logger = logging.getLogger(__name__)

DEFAULT_FOREIGN_KEYS: dict[str, dict[str, str]] = {
    PRODUCTS: {"supplier_id": SUPPLIERS},
    REPLENISHMENT_REQUESTS: {"product_id": PRODUCTS, "supplier_id": SUPPLIERS},
    SALES: {"product_id": PRODUCTS},
}

DEFAULT_NON_NEGATIVE: dict[str, set[str]] = {
    PRODUCTS: {"current_stock", "min_stock", "max_stock"},
}


class InMemoryStore(InventoryStore):
    """
    Dictionary-backed store.

    Args:
        foreign_keys: {table: {column: referenced_table}} checked on insert/update.
        columns: optional {table: {column, ...}} schema; filtering or ordering on
            a column missing from a declared schema fails like a bad query would.
        non_negative: {table: {column, ...}} that may never go below zero.
        latency: seconds to sleep per call, to simulate a network round-trip.
    """

    def __init__(
        self,
        foreign_keys: dict[str, dict[str, str]] | None = None,
        columns: dict[str, set[str]] | None = None,
        non_negative: dict[str, set[str]] | None = None,
        latency: float = 0.0,
    ):
        self._tables: dict[str, dict[str, Row]] = defaultdict(dict)
        self._locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)
        self.foreign_keys = DEFAULT_FOREIGN_KEYS if foreign_keys is None else foreign_keys
        self.columns = columns or {}
        self.non_negative = DEFAULT_NON_NEGATIVE if non_negative is None else non_negative
        self.latency = latency
        # (operation, table) log, handy for asserting that no write happened
        self.calls: list[tuple[str, str]] = []

    # --- Helpers --- #

    def seed(self, table: str, rows: list[Row]) -> None:
        """Load rows synchronously, bypassing constraints (test setup)."""
        for row in rows:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid.uuid4()))
            self._tables[table][stored["id"]] = stored

    def rows(self, table: str) -> list[Row]:
        """Snapshot of a table's rows."""
        return [copy.deepcopy(r) for r in self._tables[table].values()]

    def writes(self, table: str | None = None) -> list[tuple[str, str]]:
        return [
            c
            for c in self.calls
            if c[0] in ("insert", "update", "delete", "increment")
            and (table is None or c[1] == table)
        ]

    async def _round_trip(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        await asyncio.sleep(self.latency)

    def _check_columns(self, table: str, names: list[str]) -> None:
        schema = self.columns.get(table)
        if schema is None:
            return
        unknown = [n for n in names if n not in schema]
        if unknown:
            raise StoreError(f"column {table}.{unknown[0]} does not exist")

    def _check_constraints(self, table: str, row: Row) -> None:
        for column, target in self.foreign_keys.get(table, {}).items():
            value = row.get(column)
            if value is not None and value not in self._tables[target]:
                raise StoreError(
                    f"insert or update on table {table} violates foreign key constraint "
                    f"on {column}: {value!r} not present in {target}"
                )
        for column in self.non_negative.get(table, set()):
            value = row.get(column)
            if value is not None and value < 0:
                raise StoreError(f"new row for {table} violates check constraint {column} >= 0")

    def _with_embeds(self, row: Row, embed: dict[str, str] | None) -> Row:
        result = copy.deepcopy(row)
        for alias, target in (embed or {}).items():
            ref = row.get(f"{alias}_id")
            joined = self._tables[target].get(ref) if ref is not None else None
            result[alias] = copy.deepcopy(joined)
        return result

    def _require(self, table: str, record_id: str) -> Row:
        row = self._tables[table].get(record_id)
        if row is None:
            raise RecordNotFoundError(f"{table} record {record_id} not found")
        return row

    # --- InventoryStore --- #

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        embed: dict[str, str] | None = None,
    ) -> list[Row]:
        await self._round_trip("select", table)
        filters = filters or {}
        self._check_columns(table, list(filters) + ([order_by] if order_by else []))
        matches = [
            row
            for row in self._tables[table].values()
            if all(row.get(col) == val for col, val in filters.items())
        ]
        if order_by:
            # Rows missing the column sort last, like NULLS LAST
            present = [r for r in matches if r.get(order_by) is not None]
            missing = [r for r in matches if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            matches = present + missing
        return [self._with_embeds(row, embed) for row in matches]

    async def get(
        self, table: str, record_id: str, embed: dict[str, str] | None = None
    ) -> Row | None:
        await self._round_trip("get", table)
        row = self._tables[table].get(record_id)
        return self._with_embeds(row, embed) if row is not None else None

    async def insert(
        self, table: str, row: Row, embed: dict[str, str] | None = None
    ) -> Row:
        await self._round_trip("insert", table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", _now())
        if stored["id"] in self._tables[table]:
            raise StoreError(f"duplicate key value violates unique constraint {table}_pkey")
        self._check_constraints(table, stored)
        self._tables[table][stored["id"]] = stored
        logger.debug(f"Inserted {table} record {stored['id']}")
        return self._with_embeds(stored, embed)

    async def update(
        self,
        table: str,
        record_id: str,
        changes: Row,
        match: dict[str, Any] | None = None,
    ) -> Row | None:
        await self._round_trip("update", table)
        row = self._require(table, record_id)
        if match and any(row.get(col) != val for col, val in match.items()):
            return None
        candidate = {**row, **copy.deepcopy(changes)}
        self._check_constraints(table, candidate)
        self._tables[table][record_id] = candidate
        return copy.deepcopy(candidate)

    async def delete(self, table: str, record_id: str) -> None:
        await self._round_trip("delete", table)
        self._require(table, record_id)
        del self._tables[table][record_id]

    async def increment(
        self, table: str, record_id: str, column: str, amount: int
    ) -> Row:
        await self._round_trip("increment", table)
        async with self._locks[(table, record_id)]:
            row = self._require(table, record_id)
            candidate = {**row, column: (row.get(column) or 0) + amount, "updated_at": _now()}
            self._check_constraints(table, candidate)
            self._tables[table][record_id] = candidate
            return copy.deepcopy(candidate)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
