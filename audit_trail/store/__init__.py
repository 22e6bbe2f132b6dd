"""
Table store module for the Audit Trail.

This module provides the row-oriented storage the gateway writes to:
- TableStore protocol (row-indexed, header in row 1)
- In-memory backend for tests and local development
- SQLite backend, one database file per store identifier

Invariants:
    - All backends share the same positional semantics
    - Row 1 (the header) is never deleted through the store
"""

from .base import (
    RowRangeError,
    StoreConnectionError,
    StoreMissingError,
    TableExistsError,
    TableNotFoundError,
    TableStore,
    TableStoreError,
    create_table_store,
)
from .memory import InMemoryTableStore
from .sqlite_store import SqliteTableStore

__all__ = [
    "TableStore",
    "TableStoreError",
    "StoreConnectionError",
    "StoreMissingError",
    "TableNotFoundError",
    "TableExistsError",
    "RowRangeError",
    "create_table_store",
    "InMemoryTableStore",
    "SqliteTableStore",
]
