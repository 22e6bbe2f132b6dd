"""
Asset Audit Trail - entry store gateway for a fixed-asset dashboard.

This package implements the audit trail backend of an asset tracking
dashboard. The browser page reads and writes audit entries through a
single HTTP endpoint, which translates them into row operations against
a row-oriented table store (a spreadsheet used as a datastore).

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────┐
    │   Browser   │────▶│  HTTP /exec │────▶│ EntryGateway│
    │  (or client)│     │  (FastAPI)  │     │  read/create│
    └─────────────┘     └─────────────┘     │  /delete    │
                                            └──────┬──────┘
                                                   │ rows.py
                                                   ▼
                                     ┌──────────────────────────┐
                                     │ TableStore (memory/SQLite)│
                                     │ row 1 = header, 2.. = data│
                                     └──────────────────────────┘

Invariants:
    - Row 1 of the table always holds the column headers
    - Column order is fixed (see rows.COLUMNS)
    - An entry's identifier is its current row number; deleting a row
      shifts every later entry up by one
    - Every request yields a JSON envelope with a status field

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
