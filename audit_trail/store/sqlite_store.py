"""
SQLite table store for the Audit Trail.

This module keeps each store in its own SQLite file and models the
spreadsheet the dashboard was built around: named tables whose first row
is a header row, followed by data rows addressed by position.

Invariants:
    - One SQLite file per store identifier
    - Row positions are never stored; they are derived from the order of
      an internal autoincrement key, so deleting a row shifts the
      positions of every later row
    - Every write runs in its own transaction (BEGIN IMMEDIATE)
    - A store whose database file is missing raises StoreMissingError;
      only create_table()/initialize_store() create the file

How to change safely:
    - Schema migrations must be backward compatible
    - Keep row ordering tied to row_key; never reuse row keys

Table schema:
    tables:
        - name TEXT PRIMARY KEY
        - headers_json TEXT (JSON array)
        - created_at INTEGER (Unix ms)

    table_rows:
        - row_key INTEGER PRIMARY KEY AUTOINCREMENT
        - table_name TEXT
        - cells_json TEXT (JSON array)
        - created_at INTEGER (Unix ms)
        - INDEX on (table_name, row_key)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Sequence

from .base import (
    RowRangeError,
    StoreConnectionError,
    StoreMissingError,
    TableExistsError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)


class SqliteTableStore:
    """SQLite-backed implementation of TableStore.

    Thread safety:
        Each operation opens its own connection. Writes are serialized by
        an asyncio lock and by SQLite's own locking.

    Example:
        >>> store = SqliteTableStore("/var/lib/audit-trail", store_id="plant_7")
        >>> await store.connect()
        >>> await store.create_table("Audit Trail", COLUMNS)
        >>> await store.append_row("Audit Trail", row)
        2
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        store_id: str = "default",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory for SQLite database files
            store_id: Store identifier (selects the database file)
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.data_dir = Path(data_dir)
        self.store_id = store_id
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def db_path(self) -> Path:
        """Database file path for this store."""
        # Sanitize store_id to prevent path traversal
        safe_id = "".join(c for c in self.store_id if c.isalnum() or c in "-_")
        return self.data_dir / f"store_{safe_id}.db"

    async def connect(self) -> None:
        self._connected = True
        logger.debug(f"SqliteTableStore {self.store_id} connected ({self.db_path})")

    async def close(self) -> None:
        self._connected = False
        logger.debug(f"SqliteTableStore {self.store_id} closed")

    def _open(self, db_path: Path) -> sqlite3.Connection:
        """Open the store file with explicit-transaction mode and pragmas."""
        conn = sqlite3.connect(
            str(db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        pragmas = [f"busy_timeout = {self.busy_timeout_ms}", "synchronous = NORMAL"]
        if self.wal_mode:
            pragmas.append("journal_mode = WAL")
        try:
            for pragma in pragmas:
                conn.execute(f"PRAGMA {pragma}")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @contextmanager
    def _get_connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection to this store's file, closing it afterwards.

        Raises:
            StoreConnectionError: If connect() has not been called
            StoreMissingError: If the file is absent and ``create`` is False
        """
        if not self._connected:
            raise StoreConnectionError(f"Store {self.store_id} is not connected")

        db_path = self.db_path
        if db_path.exists():
            conn = self._open(db_path)
        elif create:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._open(db_path)
        else:
            raise StoreMissingError(self.store_id)

        try:
            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tables (
                name TEXT PRIMARY KEY,
                headers_json TEXT NOT NULL DEFAULT '[]',
                created_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS table_rows (
                row_key INTEGER PRIMARY KEY AUTOINCREMENT,
                table_name TEXT NOT NULL,
                cells_json TEXT NOT NULL DEFAULT '[]',
                created_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_table_rows_order
                ON table_rows(table_name, row_key);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)

    async def initialize_store(self) -> None:
        """Create the database file and schema if they don't exist."""
        async with self._lock:
            with self._get_connection(create=True) as conn:
                self._create_schema(conn)
                logger.info(f"Initialized store database: {self.store_id}")

    async def store_exists(self) -> bool:
        return self.db_path.exists()

    def _headers(self, conn: sqlite3.Connection, table_name: str) -> list[Any]:
        try:
            row = conn.execute(
                "SELECT headers_json FROM tables WHERE name = ?",
                (table_name,),
            ).fetchone()
        except sqlite3.OperationalError:
            # Database file exists but was never initialized
            raise TableNotFoundError(table_name) from None
        if row is None:
            raise TableNotFoundError(table_name)
        return json.loads(row["headers_json"])

    def _count_data_rows(self, conn: sqlite3.Connection, table_name: str) -> int:
        cursor = conn.execute(
            "SELECT COUNT(*) FROM table_rows WHERE table_name = ?",
            (table_name,),
        )
        return cursor.fetchone()[0]

    def _row_key_at(self, conn: sqlite3.Connection, table_name: str, row_number: int) -> int | None:
        """Resolve a data row position (>= 2) to its row key."""
        row = conn.execute(
            """
            SELECT row_key FROM table_rows
            WHERE table_name = ?
            ORDER BY row_key
            LIMIT 1 OFFSET ?
            """,
            (table_name, row_number - 2),
        ).fetchone()
        return row["row_key"] if row else None

    async def table_exists(self, table_name: str) -> bool:
        with self._get_connection() as conn:
            try:
                self._headers(conn, table_name)
            except TableNotFoundError:
                return False
            return True

    async def create_table(self, table_name: str, headers: Sequence[str]) -> None:
        async with self._lock:
            with self._get_connection(create=True) as conn:
                self._create_schema(conn)
                existing = conn.execute(
                    "SELECT headers_json FROM tables WHERE name = ?",
                    (table_name,),
                ).fetchone()
                if existing is not None:
                    if json.loads(existing["headers_json"]) == list(headers):
                        return
                    raise TableExistsError(
                        f"Table {table_name} already exists with different headers"
                    )
                conn.execute(
                    "INSERT INTO tables (name, headers_json, created_at) VALUES (?, ?, ?)",
                    (table_name, json.dumps(list(headers)), int(time.time() * 1000)),
                )
                logger.info(f"Created table {table_name} in store {self.store_id}")

    async def get_last_row(self, table_name: str) -> int:
        with self._get_connection() as conn:
            self._headers(conn, table_name)
            return 1 + self._count_data_rows(conn, table_name)

    async def get_rows(self, table_name: str) -> list[list[Any]]:
        with self._get_connection() as conn:
            headers = self._headers(conn, table_name)
            cursor = conn.execute(
                "SELECT cells_json FROM table_rows WHERE table_name = ? ORDER BY row_key",
                (table_name,),
            )
            return [headers] + [json.loads(row["cells_json"]) for row in cursor.fetchall()]

    async def get_row(self, table_name: str, row_number: int) -> list[Any]:
        with self._get_connection() as conn:
            headers = self._headers(conn, table_name)
            if row_number == 1:
                return headers

            row = None
            if row_number > 1:
                row = conn.execute(
                    """
                    SELECT cells_json FROM table_rows
                    WHERE table_name = ?
                    ORDER BY row_key
                    LIMIT 1 OFFSET ?
                    """,
                    (table_name, row_number - 2),
                ).fetchone()
            if row is None:
                raise RowRangeError(row_number, 1 + self._count_data_rows(conn, table_name))
            return json.loads(row["cells_json"])

    async def append_row(self, table_name: str, values: Sequence[Any]) -> int:
        async with self._lock:
            with self._get_connection() as conn:
                self._headers(conn, table_name)
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute(
                        """
                        INSERT INTO table_rows (table_name, cells_json, created_at)
                        VALUES (?, ?, ?)
                        """,
                        (table_name, json.dumps(list(values)), int(time.time() * 1000)),
                    )
                    last_row = 1 + self._count_data_rows(conn, table_name)
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
                return last_row

    async def delete_row(self, table_name: str, row_number: int) -> None:
        async with self._lock:
            with self._get_connection() as conn:
                self._headers(conn, table_name)
                conn.execute("BEGIN IMMEDIATE")
                try:
                    row_key = self._row_key_at(conn, table_name, row_number) if row_number >= 2 else None
                    if row_key is None:
                        raise RowRangeError(row_number, 1 + self._count_data_rows(conn, table_name))
                    conn.execute("DELETE FROM table_rows WHERE row_key = ?", (row_key,))
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
