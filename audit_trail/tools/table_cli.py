"""
Table tool for the Audit Trail.

This tool prepares and inspects the table the gateway serves:
- init: Create the store and the table with the header row
- check: Verify the header row matches the column schema
- list: Print all entries as JSON

Usage:
    audit-trail-table init
    audit-trail-table check --table "Audit Trail"
    audit-trail-table list --store-id plant_7 > entries.json

Invariants:
    - init never rewrites an existing table with different headers
    - check exits non-zero when the header row does not match
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any

from ..config import StoreConfig
from ..errors import AuditTrailError
from ..gateway import EntryGateway
from ..rows import COLUMNS, headers_match
from ..store import SqliteTableStore, TableStore, TableStoreError, create_table_store

logger = logging.getLogger(__name__)


class TableCLI:
    """Table management commands.

    Example:
        >>> cli = TableCLI(store, config)
        >>> await cli.init()
        >>> ok, issues = await cli.check()
    """

    def __init__(self, store: TableStore, config: StoreConfig) -> None:
        self.store = store
        self.config = config

    async def init(self) -> None:
        """Create the store (SQLite) and the table with the header row.

        Raises:
            TableExistsError: If the table exists with different headers
        """
        if isinstance(self.store, SqliteTableStore):
            await self.store.initialize_store()
        await self.store.create_table(self.config.table_name, COLUMNS)

    async def check(self) -> tuple[bool, list[str]]:
        """Verify the table exists and its header row matches.

        Returns:
            Tuple of (is_valid, list_of_issues)
        """
        try:
            headers = await self.store.get_row(self.config.table_name, 1)
        except TableStoreError as e:
            return False, [str(e)]

        if headers_match(headers):
            return True, []

        issues = []
        for index, expected in enumerate(COLUMNS):
            actual = headers[index] if index < len(headers) else None
            if actual != expected:
                issues.append(f"Column {index + 1}: expected {expected!r}, found {actual!r}")
        for index in range(len(COLUMNS), len(headers)):
            issues.append(f"Column {index + 1}: unexpected extra header {headers[index]!r}")
        return False, issues

    async def list_entries(self) -> dict[str, Any]:
        """Read all entries through the gateway.

        Raises:
            AuditTrailError: If the store or table is missing
        """
        return await EntryGateway(self.store, self.config).read()


async def _run(args: argparse.Namespace) -> int:
    config = StoreConfig.from_env()
    overrides = {
        name: value
        for name, value in (
            ("store_id", args.store_id),
            ("table_name", args.table),
            ("data_dir", args.data_dir),
        )
        if value is not None
    }
    config = dataclasses.replace(config, **overrides)

    store = create_table_store(config)
    await store.connect()
    cli = TableCLI(store, config)

    try:
        if args.command == "init":
            await cli.init()
            print(f'Table "{config.table_name}" ready in store {config.store_id}')
            return 0

        if args.command == "check":
            ok, issues = await cli.check()
            if ok:
                print(f'Table "{config.table_name}" header row is valid')
                return 0
            print(f'Table "{config.table_name}" check FAILED with {len(issues)} issue(s):')
            for issue in issues:
                print(f"  - {issue}")
            return 1

        if args.command == "list":
            try:
                result = await cli.list_entries()
            except AuditTrailError as e:
                print(e.message, file=sys.stderr)
                return 1
            print(json.dumps(result, indent=2, default=str))
            return 0
    finally:
        await store.close()

    return 2


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the table tool."""
    parser = argparse.ArgumentParser(description="Audit Trail table management tool")
    parser.add_argument("--store-id", help="Store identifier (default: AUDIT_TRAIL_STORE_ID)")
    parser.add_argument("--table", help="Table name (default: AUDIT_TRAIL_TABLE)")
    parser.add_argument("--data-dir", help="SQLite data directory (default: AUDIT_TRAIL_DATA_DIR)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", help="Create the table with the header row")
    subparsers.add_parser("check", help="Verify the header row")
    subparsers.add_parser("list", help="Print all entries as JSON")

    args = parser.parse_args(argv)

    try:
        return asyncio.run(_run(args))
    except (TableStoreError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
