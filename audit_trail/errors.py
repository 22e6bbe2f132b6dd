"""
Error types for the Audit Trail gateway.

This module defines every failure the gateway can report:
- AuditTrailError: Base exception
- StoreNotFoundError: Table or store is missing
- ValidationError: Required entry fields are missing
- InvalidIdentifierError: Delete row number is unusable
- UnknownActionError: Unrecognized dispatch discriminator
- UnhandledFailure: Any other storage failure
- RemoteError: Error envelope received by the HTTP client

Invariants:
    - All errors inherit from AuditTrailError
    - Each error carries an ErrorKind so callers switch on the kind,
      never on the message text
    - Error messages are human readable and echo the offending input
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Kinds of gateway failures, as reported in the error envelope."""

    STORE_NOT_FOUND = "STORE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    UNHANDLED_FAILURE = "UNHANDLED_FAILURE"


class AuditTrailError(Exception):
    """Base exception for all Audit Trail errors.

    Attributes:
        message: Error message
        kind: Error kind for programmatic handling
        details: Additional error context
    """

    kind = ErrorKind.UNHANDLED_FAILURE

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return self.kind.value


class StoreNotFoundError(AuditTrailError):
    """The named table or store does not exist.

    Raised when:
    - The store identifier does not resolve to a store
    - The table is missing from the store
    """

    kind = ErrorKind.STORE_NOT_FOUND

    def __init__(
        self,
        table_name: str,
        store_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        msg = (
            f'Table "{table_name}" not found. '
            f'Please create a table named "{table_name}" with the audit trail headers.'
        )
        if reason:
            msg = f"{reason}. {msg}"
        super().__init__(msg, details={"table_name": table_name, "store_id": store_id})
        self.table_name = table_name
        self.store_id = store_id


class ValidationError(AuditTrailError):
    """Entry payload validation failed.

    Attributes:
        missing_fields: Required fields that were absent or empty
    """

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        missing_fields: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message, details={"missing_fields": missing_fields or []})
        self.missing_fields = missing_fields or []

    @classmethod
    def for_missing(cls, missing_fields: List[str]) -> ValidationError:
        return cls(
            f"Missing required fields: {', '.join(missing_fields)}",
            missing_fields=missing_fields,
        )


class InvalidIdentifierError(AuditTrailError):
    """Row number supplied for deletion is unusable.

    Raised when:
    - The row number is missing or not numeric
    - The row number points at the header row or below it
    - The row number is past the current last row
    """

    kind = ErrorKind.INVALID_IDENTIFIER

    def __init__(
        self,
        message: str,
        value: Any = None,
        last_row: Optional[int] = None,
    ) -> None:
        super().__init__(message, details={"value": value, "last_row": last_row})
        self.value = value
        self.last_row = last_row


class UnknownActionError(AuditTrailError):
    """Request carried an action the gateway does not route."""

    kind = ErrorKind.UNKNOWN_ACTION

    def __init__(self, action: Any) -> None:
        shown = "(missing)" if action is None else action
        super().__init__(f"Unknown action: {shown}", details={"action": action})
        self.action = action


class UnhandledFailure(AuditTrailError):
    """Any other failure raised by the storage layer.

    The message is the stringified underlying error.
    """

    kind = ErrorKind.UNHANDLED_FAILURE

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__, details={"cause": type(cause).__name__})
        self.cause = cause


class RemoteError(AuditTrailError):
    """Error envelope returned by a remote Audit Trail endpoint.

    The kind comes from the envelope's ``code`` field; unknown codes are
    reported as UNHANDLED_FAILURE.
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message, details={"code": code})
        try:
            self.kind = ErrorKind(code)
        except ValueError:
            self.kind = ErrorKind.UNHANDLED_FAILURE
