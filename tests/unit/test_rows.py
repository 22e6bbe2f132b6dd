"""
Unit tests for row mapping.

Tests cover:
- Entry defaults on create
- Column order of written rows
- Row to record mapping with row numbers
- Header verification
"""

import re

import pytest

from audit_trail.rows import (
    COLUMNS,
    Entry,
    column_index,
    headers_match,
    missing_required,
    row_to_record,
    rows_to_records,
)


class TestEntry:
    """Tests for Entry.from_payload and to_row."""

    def test_defaults_applied(self):
        """Absent text fields become "", absent value becomes 0."""
        entry = Entry.from_payload(
            {"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Checkout"}
        )

        assert entry.description == ""
        assert entry.user == ""
        assert entry.location == ""
        assert entry.notes == ""
        assert entry.value == 0

    def test_row_follows_column_order(self):
        """to_row emits values in header order."""
        entry = Entry.from_payload(
            {
                "value": 1200,
                "notes": "Charger included",
                "location": "HQ-3F",
                "user": "jdoe",
                "action": "Checkout",
                "description": "Laptop",
                "assetCode": "LT-0042",
                "timestamp": "2025-03-04T09:30:00Z",
            }
        )

        assert entry.to_row() == [
            "2025-03-04T09:30:00Z",
            "LT-0042",
            "Laptop",
            "Checkout",
            "jdoe",
            "HQ-3F",
            "Charger included",
            1200,
        ]

    def test_missing_timestamp_defaults_to_now(self):
        """A missing timestamp is filled with the current ISO time."""
        entry = Entry.from_payload({"assetCode": "A-1", "action": "Return"})

        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", entry.timestamp)

    def test_value_not_type_checked(self):
        """Values are stored as given."""
        entry = Entry.from_payload({"assetCode": "A-1", "action": "Audit", "value": "n/a"})

        assert entry.value == "n/a"

    def test_unknown_keys_ignored(self):
        """Payload keys outside the schema are dropped."""
        entry = Entry.from_payload({"assetCode": "A-1", "action": "Audit", "colour": "red"})

        assert "colour" not in entry.to_dict()
        assert len(entry.to_row()) == len(COLUMNS)


class TestMissingRequired:
    """Tests for missing_required."""

    def test_all_present(self):
        payload = {"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Checkout"}
        assert missing_required(payload) == []

    def test_reports_missing_in_order(self):
        assert missing_required({"assetCode": "A-1"}) == ["timestamp", "action"]

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank_counts_as_missing(self, blank):
        payload = {"timestamp": "2025-01-01T00:00:00Z", "assetCode": blank, "action": "Checkout"}
        assert missing_required(payload) == ["assetCode"]


class TestRowToRecord:
    """Tests for store row to record mapping."""

    def test_maps_headers_to_keys(self):
        """Fixed schema labels become camelCase keys."""
        row = ["2025-01-01T00:00:00Z", "A-1", "Desk", "Move", "amy", "B2", "", 300]

        record = row_to_record(list(COLUMNS), row, 5)

        assert record["assetCode"] == "A-1"
        assert record["action"] == "Move"
        assert record["value"] == 300
        assert record["rowNumber"] == 5

    def test_short_row_padded(self):
        record = row_to_record(list(COLUMNS), ["2025-01-01T00:00:00Z", "A-1"], 2)

        assert record["notes"] == ""
        assert record["value"] == ""

    def test_unknown_header_kept_verbatim(self):
        record = row_to_record(["Asset Code", "Cost Centre"], ["A-1", "CC-9"], 2)

        assert record == {"assetCode": "A-1", "Cost Centre": "CC-9", "rowNumber": 2}

    def test_rows_to_records_numbers_from_two(self):
        rows = [list(COLUMNS), ["t1", "A-1"], ["t2", "A-2"], ["t3", "A-3"]]

        records = rows_to_records(rows)

        assert [r["rowNumber"] for r in records] == [2, 3, 4]
        assert [r["assetCode"] for r in records] == ["A-1", "A-2", "A-3"]

    def test_header_only_is_empty(self):
        assert rows_to_records([list(COLUMNS)]) == []

    def test_empty_range_is_empty(self):
        assert rows_to_records([]) == []


class TestHeaders:
    """Tests for header helpers."""

    def test_exact_headers_match(self):
        assert headers_match(list(COLUMNS))

    def test_reordered_headers_do_not_match(self):
        headers = list(COLUMNS)
        headers[0], headers[1] = headers[1], headers[0]
        assert not headers_match(headers)

    def test_extra_header_does_not_match(self):
        assert not headers_match(list(COLUMNS) + ["Extra"])

    def test_column_index_uses_header(self):
        assert column_index(["Notes", "Asset Code"], "assetCode") == 1

    def test_column_index_falls_back_to_schema(self):
        assert column_index(["a", "b", "c"], "assetCode") == 1
