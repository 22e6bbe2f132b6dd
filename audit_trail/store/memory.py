"""
In-memory table store implementation.

This module provides a simple in-memory backend for:
- Unit tests
- Integration tests
- Local development without a data directory

Invariants:
    - All data is lost on process exit
    - Provides the same positional semantics as the SQLite backend
    - Safe for concurrent coroutines (one asyncio lock per store)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Sequence

from .base import (
    RowRangeError,
    StoreConnectionError,
    TableExistsError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)


class InMemoryTableStore:
    """In-memory implementation of TableStore.

    Each table is a list of rows; row 1 is ``rows[0]``.

    Example:
        >>> store = InMemoryTableStore()
        >>> await store.connect()
        >>> await store.create_table("Audit Trail", ["Timestamp"])
        >>> await store.get_last_row("Audit Trail")
        1
    """

    def __init__(self, store_id: str = "memory") -> None:
        """Initialize in-memory store.

        Args:
            store_id: Identifier reported in log messages
        """
        self.store_id = store_id
        self._tables: Dict[str, List[List[Any]]] = {}
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug(f"InMemoryTableStore {self.store_id} connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self._tables.clear()
        logger.debug(f"InMemoryTableStore {self.store_id} closed")

    def _table(self, table_name: str) -> List[List[Any]]:
        if not self._connected:
            raise StoreConnectionError(f"Store {self.store_id} is not connected")
        try:
            return self._tables[table_name]
        except KeyError:
            raise TableNotFoundError(table_name) from None

    async def table_exists(self, table_name: str) -> bool:
        if not self._connected:
            raise StoreConnectionError(f"Store {self.store_id} is not connected")
        return table_name in self._tables

    async def create_table(self, table_name: str, headers: Sequence[str]) -> None:
        if not self._connected:
            raise StoreConnectionError(f"Store {self.store_id} is not connected")

        async with self._lock:
            existing = self._tables.get(table_name)
            if existing is not None:
                if existing and existing[0] == list(headers):
                    return
                raise TableExistsError(f"Table {table_name} already exists with different headers")
            self._tables[table_name] = [list(headers)]
            logger.info(f"Created table {table_name} in store {self.store_id}")

    async def get_last_row(self, table_name: str) -> int:
        return len(self._table(table_name))

    async def get_rows(self, table_name: str) -> List[List[Any]]:
        return [list(row) for row in self._table(table_name)]

    async def get_row(self, table_name: str, row_number: int) -> List[Any]:
        rows = self._table(table_name)
        if row_number < 1 or row_number > len(rows):
            raise RowRangeError(row_number, len(rows))
        return list(rows[row_number - 1])

    async def append_row(self, table_name: str, values: Sequence[Any]) -> int:
        async with self._lock:
            rows = self._table(table_name)
            rows.append(list(values))
            return len(rows)

    async def delete_row(self, table_name: str, row_number: int) -> None:
        async with self._lock:
            rows = self._table(table_name)
            if row_number < 2 or row_number > len(rows):
                raise RowRangeError(row_number, len(rows))
            del rows[row_number - 1]

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def drop_table(self, table_name: str) -> None:
        """Remove a table (for testing missing-table behavior)."""
        self._tables.pop(table_name, None)
