"""
Entry store gateway for the Audit Trail.

The gateway is the request dispatcher behind the HTTP endpoint. It routes
read/create/delete requests to row operations on the table store and turns
every outcome into a uniform JSON envelope:

    {"status": "success", ...operation fields}
    {"status": "error", "code": ..., "message": ...}

Invariants:
    - Nothing raised by an operation escapes handle_get()/handle_post()
    - Row 1 (the header) is never deleted
    - A failed create appends nothing; a failed delete removes nothing
    - Failures are classified by ErrorKind, never by message text

How to change safely:
    - New operations need a discriminator value, a handler and tests for
      both the success and the error envelope
    - Keep envelope field names stable, the dashboard page reads them
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, Mapping

from .config import StoreConfig
from .errors import (
    AuditTrailError,
    ErrorKind,
    InvalidIdentifierError,
    StoreNotFoundError,
    UnhandledFailure,
    UnknownActionError,
    ValidationError,
)
from .rows import (
    FIRST_DATA_ROW,
    Entry,
    column_index,
    is_blank,
    missing_required,
    rows_to_records,
)
from .store.base import RowRangeError, StoreMissingError, TableNotFoundError, TableStore

logger = logging.getLogger(__name__)

READ = "read"
CREATE = "create"
DELETE = "delete"

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


@dataclass
class GatewayResult:
    """Outcome of one gateway operation.

    Attributes:
        data: Operation fields for the success envelope
        error: The failure, when the operation did not succeed
    """

    data: dict[str, Any] = field(default_factory=dict)
    error: AuditTrailError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None

    def to_envelope(self) -> dict[str, Any]:
        if self.error is not None:
            return {
                "status": STATUS_ERROR,
                "code": self.error.code,
                "message": self.error.message,
            }
        return {"status": STATUS_SUCCESS, **self.data}


def parse_row_number(value: Any) -> int:
    """Coerce a delete identifier to an int.

    Accepts ints, integral floats and numeric strings.

    Raises:
        InvalidIdentifierError: If the value is missing or not numeric
    """
    if is_blank(value):
        raise InvalidIdentifierError("Row number is required", value=value)
    if isinstance(value, bool):
        raise InvalidIdentifierError(f"Invalid row number: {value}", value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        try:
            return int(value.strip())
        except ValueError:
            # Repeated signs or non-ASCII digits such as "²"
            raise InvalidIdentifierError(f"Invalid row number: {value}", value=value) from None
    raise InvalidIdentifierError(f"Invalid row number: {value}", value=value)


def resolve_write_action(body: Mapping[str, Any]) -> str:
    """Pick the write operation for a POST body.

    ``action`` is also the entry's action label, so it only selects an
    operation when it is ``"delete"``. An explicit ``op`` key wins.
    """
    if "op" in body:
        op = body["op"]
        if op not in (CREATE, DELETE):
            raise UnknownActionError(op)
        return op
    return DELETE if body.get("action") == DELETE else CREATE


class EntryGateway:
    """Dispatcher for read/create/delete against the audit trail table.

    Attributes:
        store: Table store holding the audit trail
        config: Store configuration (store identifier and table name)

    Example:
        >>> gateway = EntryGateway(store, StoreConfig(table_name="Audit Trail"))
        >>> await gateway.handle_post({"timestamp": "2025-01-01T00:00:00Z",
        ...                            "assetCode": "A-1", "action": "Checkout"})
        {'status': 'success', 'message': 'Entry added successfully', 'rowNumber': 2}
    """

    def __init__(self, store: TableStore, config: StoreConfig) -> None:
        self.store = store
        self.config = config

    @property
    def table_name(self) -> str:
        return self.config.table_name

    # =========================================================================
    # Operations
    # =========================================================================

    async def read(self) -> dict[str, Any]:
        """Return every entry with its current row number.

        Returns:
            ``{"entries": [...], "count": n}``

        Raises:
            StoreNotFoundError: If the store or table does not exist
        """
        with self._store_errors():
            rows = await self.store.get_rows(self.table_name)
        entries = rows_to_records(rows)
        return {"entries": entries, "count": len(entries)}

    async def create(self, payload: Mapping[str, Any]) -> int:
        """Append an entry as the new last row.

        Args:
            payload: Entry fields; timestamp, assetCode and action are required

        Returns:
            Row number of the new entry

        Raises:
            ValidationError: If required fields are missing or blank
            StoreNotFoundError: If the store or table does not exist
        """
        missing = missing_required(payload)
        if missing:
            raise ValidationError.for_missing(missing)

        entry = Entry.from_payload(payload)
        with self._store_errors():
            row_number = await self.store.append_row(self.table_name, entry.to_row())
        logger.info(f"Appended entry for asset {entry.assetCode} at row {row_number}")
        return row_number

    async def delete(self, identifier: Any) -> tuple[int, Any]:
        """Delete the entry at a row number.

        The asset code is read before deletion so it can be echoed back.

        Args:
            identifier: Row number of the entry (>= 2)

        Returns:
            Tuple of (deleted row number, asset code that was in that row)

        Raises:
            InvalidIdentifierError: If the row number is missing, not numeric,
                the header row, or past the last row
            StoreNotFoundError: If the store or table does not exist
        """
        row_number = parse_row_number(identifier)
        if row_number < FIRST_DATA_ROW:
            raise InvalidIdentifierError(
                f"Invalid row number: {row_number}. Entries start at row {FIRST_DATA_ROW}",
                value=identifier,
            )

        with self._store_errors():
            last_row = await self.store.get_last_row(self.table_name)
            if row_number > last_row:
                raise InvalidIdentifierError(
                    f"Invalid row number: {row_number}. Last row is {last_row}",
                    value=identifier,
                    last_row=last_row,
                )

            headers = await self.store.get_row(self.table_name, 1)
            row = await self.store.get_row(self.table_name, row_number)
            index = column_index(headers, "assetCode")
            asset_code = row[index] if index < len(row) else ""

            await self.store.delete_row(self.table_name, row_number)
        logger.info(f"Deleted entry for asset {asset_code} at row {row_number}")
        return row_number, asset_code

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_get(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Handle a GET request; only ``action=read`` is routed."""
        action = params.get("action")

        async def op() -> dict[str, Any]:
            if action != READ:
                raise UnknownActionError(action)
            return await self.read()

        result = await self._run(action, op)
        return result.to_envelope()

    async def handle_post(self, body: Any) -> dict[str, Any]:
        """Handle a POST request carrying a create or delete body."""

        async def op() -> dict[str, Any]:
            if not isinstance(body, Mapping):
                raise ValidationError("Request body must be a JSON object")
            return await self.dispatch(resolve_write_action(body), body)

        result = await self._run("post", op)
        return result.to_envelope()

    async def dispatch(self, action: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Route an already-resolved action.

        Raises:
            UnknownActionError: If the action is not read/create/delete
        """
        if action == READ:
            return await self.read()
        if action == CREATE:
            row_number = await self.create(payload)
            return {"message": "Entry added successfully", "rowNumber": row_number}
        if action == DELETE:
            deleted_row, asset_code = await self.delete(payload.get("rowNumber"))
            return {
                "message": f"Entry deleted successfully (row {deleted_row})",
                "deletedRow": deleted_row,
                "assetCode": asset_code,
            }
        raise UnknownActionError(action)

    async def _run(
        self,
        action: Any,
        op: Callable[[], Awaitable[dict[str, Any]]],
    ) -> GatewayResult:
        """Run an operation, converting every failure to a typed result."""
        try:
            return GatewayResult(data=await op())
        except Exception as e:
            error = self._classify(e)
            if isinstance(error, UnhandledFailure):
                logger.exception(f"Unhandled failure for action {action}: {e}")
            else:
                logger.warning(f"Request for action {action} failed: {error.code}: {error.message}")
            return GatewayResult(error=error)

    def _classify(self, exc: Exception) -> AuditTrailError:
        if isinstance(exc, AuditTrailError):
            return exc
        if isinstance(exc, TableNotFoundError):
            return StoreNotFoundError(self.table_name, store_id=self.config.store_id)
        if isinstance(exc, StoreMissingError):
            return StoreNotFoundError(
                self.table_name,
                store_id=self.config.store_id,
                reason=f"Store {exc.store_id} not found",
            )
        if isinstance(exc, RowRangeError):
            # Table shrank between the bounds check and the delete
            return InvalidIdentifierError(
                f"Invalid row number: {exc.row_number}. Last row is {exc.last_row}",
                value=exc.row_number,
                last_row=exc.last_row,
            )
        return UnhandledFailure(exc)

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        """Re-raise store lookup and range failures as gateway errors."""
        try:
            yield
        except (TableNotFoundError, StoreMissingError, RowRangeError) as e:
            raise self._classify(e) from e
