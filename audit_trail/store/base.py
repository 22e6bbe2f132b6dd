"""
Base protocol and types for the table store abstraction.

A table store is a row-oriented, spreadsheet-like datastore. Tables are
addressed by name inside a store; rows are addressed by their 1-based
position, with row 1 holding the column headers.

Invariants:
    - Row positions are 1-based and contiguous
    - Deleting row N shifts every row after it up by one
    - Each single-row operation is atomic; nothing spans operations
    - All backends raise the same exception types

How to change safely:
    - Protocol changes require updating all implementations
    - Keep positions derived from order, never stored per row
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    List,
    Protocol,
    Sequence,
    runtime_checkable,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from ..config import StoreConfig

logger = logging.getLogger(__name__)


class TableStoreError(Exception):
    """Base exception for table store operations."""
    pass


class StoreConnectionError(TableStoreError):
    """Store is not connected or cannot be reached."""
    pass


class StoreMissingError(TableStoreError):
    """No store exists for the configured store identifier."""

    def __init__(self, store_id: str) -> None:
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class TableNotFoundError(TableStoreError):
    """Named table does not exist in the store."""

    def __init__(self, table_name: str) -> None:
        super().__init__(f"Table not found: {table_name}")
        self.table_name = table_name


class TableExistsError(TableStoreError):
    """Table already exists with a different header row."""
    pass


class RowRangeError(TableStoreError):
    """Row position is outside the addressable range."""

    def __init__(self, row_number: int, last_row: int) -> None:
        super().__init__(f"Row {row_number} is out of range (last row is {last_row})")
        self.row_number = row_number
        self.last_row = last_row


@runtime_checkable
class TableStore(Protocol):
    """Protocol for row-indexed table stores.

    Example:
        >>> store = InMemoryTableStore()
        >>> await store.connect()
        >>> await store.create_table("Audit Trail", ["Timestamp", "Asset Code"])
        >>> await store.append_row("Audit Trail", ["2025-01-01T00:00:00Z", "A-1"])
        2
    """

    @property
    def is_connected(self) -> bool:
        """Whether the store is ready for operations."""
        ...

    async def connect(self) -> None:
        """Open the store.

        Raises:
            StoreConnectionError: If the store cannot be opened
        """
        ...

    async def close(self) -> None:
        """Release store resources."""
        ...

    async def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists."""
        ...

    async def create_table(self, table_name: str, headers: Sequence[str]) -> None:
        """Create a table whose first row is ``headers``.

        A no-op when the table already exists with the same headers.

        Raises:
            TableExistsError: If the table exists with different headers
        """
        ...

    async def get_last_row(self, table_name: str) -> int:
        """Return the position of the last row (0 empty, 1 header only)."""
        ...

    async def get_rows(self, table_name: str) -> List[List[Any]]:
        """Return every row of the table, header included."""
        ...

    async def get_row(self, table_name: str, row_number: int) -> List[Any]:
        """Return one row.

        Raises:
            RowRangeError: If the row does not exist
        """
        ...

    async def append_row(self, table_name: str, values: Sequence[Any]) -> int:
        """Append a row after the current last row.

        Returns:
            Position of the appended row
        """
        ...

    async def delete_row(self, table_name: str, row_number: int) -> None:
        """Delete a data row, shifting later rows up by one.

        Raises:
            RowRangeError: If the row is the header or past the last row
        """
        ...


def create_table_store(config: StoreConfig) -> TableStore:
    """Create a table store from configuration.

    Args:
        config: Store configuration

    Returns:
        TableStore implementation for the configured backend

    Raises:
        ValueError: If the backend is not supported
    """
    from ..config import StoreBackend

    if config.backend == StoreBackend.MEMORY:
        from .memory import InMemoryTableStore

        logger.info(f"Using in-memory table store for store {config.store_id}")
        return InMemoryTableStore(store_id=config.store_id)

    if config.backend == StoreBackend.SQLITE:
        from .sqlite_store import SqliteTableStore

        logger.info(f"Using SQLite table store in {config.data_dir} for store {config.store_id}")
        return SqliteTableStore(
            data_dir=config.data_dir,
            store_id=config.store_id,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )

    raise ValueError(f"Unsupported table store backend: {config.backend}")
