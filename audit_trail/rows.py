"""
Row mapping between the audit trail table and entry records.

The table has a fixed column order. This module converts store rows into
keyed records (attaching the row's current position as ``rowNumber``) and
entry payloads into store rows (filling in defaults).

Invariants:
    - COLUMNS order matches the table's header row exactly
    - Data rows start at row 2; row 1 is the header
    - Only presence is checked here; values are stored as given

How to change safely:
    - Adding a column means appending to COLUMNS and FIELD_KEYS together;
      existing tables must have their header row extended to match
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

# Header label -> record key, in table column order
FIELD_KEYS: dict[str, str] = {
    "Timestamp": "timestamp",
    "Asset Code": "assetCode",
    "Description": "description",
    "Action": "action",
    "User": "user",
    "Location": "location",
    "Notes": "notes",
    "Value": "value",
}

COLUMNS: tuple[str, ...] = tuple(FIELD_KEYS)

REQUIRED_FIELDS: tuple[str, ...] = ("timestamp", "assetCode", "action")

FIRST_DATA_ROW = 2


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string (UTC, millisecond precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


@dataclass
class Entry:
    """A single audit trail entry (one table row).

    Attributes:
        timestamp: When the action happened (ISO-8601)
        assetCode: Asset tag
        description: Asset description
        action: Free-form action label, e.g. "Checkout"
        user: Who performed the action
        location: Where the asset is
        notes: Free-form notes
        value: Asset value
    """

    timestamp: str = ""
    assetCode: str = ""
    description: str = ""
    action: str = ""
    user: str = ""
    location: str = ""
    notes: str = ""
    value: Any = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Entry:
        """Build an entry from a request payload, applying defaults.

        Unknown keys are ignored. A missing timestamp becomes the current
        time; missing text fields become ""; a missing value becomes 0.
        """
        timestamp = payload.get("timestamp")
        value = payload.get("value")
        return cls(
            timestamp=utc_now_iso() if is_blank(timestamp) else timestamp,
            assetCode=_text(payload.get("assetCode")),
            description=_text(payload.get("description")),
            action=_text(payload.get("action")),
            user=_text(payload.get("user")),
            location=_text(payload.get("location")),
            notes=_text(payload.get("notes")),
            value=0 if is_blank(value) else value,
        )

    def to_row(self) -> list[Any]:
        """Row values in table column order."""
        record = asdict(self)
        return [record[key] for key in FIELD_KEYS.values()]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _text(value: Any) -> Any:
    return "" if value is None else value


def missing_required(payload: Mapping[str, Any]) -> list[str]:
    """Required fields that are absent or blank in ``payload``."""
    return [name for name in REQUIRED_FIELDS if is_blank(payload.get(name))]


def headers_match(headers: Sequence[Any]) -> bool:
    """Whether a header row matches the fixed column schema exactly."""
    return [str(h).strip() if h is not None else "" for h in headers] == list(COLUMNS)


def row_to_record(headers: Sequence[Any], row: Sequence[Any], row_number: int) -> dict[str, Any]:
    """Map one data row to a keyed record.

    Header labels of the fixed schema become their record keys; any other
    label is used verbatim. Short rows are padded with "".

    Args:
        headers: The table's header row
        row: The data row
        row_number: 1-based position of ``row`` in the table

    Returns:
        Record with a ``rowNumber`` key
    """
    record: dict[str, Any] = {}
    for index, label in enumerate(headers):
        key = FIELD_KEYS.get(label, label)
        record[key] = row[index] if index < len(row) else ""
    record["rowNumber"] = row_number
    return record


def rows_to_records(rows: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    """Map a full data range (header row first) to records.

    An empty range or a header-only range yields an empty list.
    """
    if len(rows) < FIRST_DATA_ROW:
        return []
    headers = rows[0]
    return [
        row_to_record(headers, row, row_number)
        for row_number, row in enumerate(rows[1:], start=FIRST_DATA_ROW)
    ]


def column_index(headers: Sequence[Any], key: str) -> int:
    """Position of the column holding record ``key``.

    Falls back to the fixed schema position when the header row does not
    carry the expected label.
    """
    for index, label in enumerate(headers):
        if FIELD_KEYS.get(label, label) == key:
            return index
    return list(FIELD_KEYS.values()).index(key)
