"""
HTTP API for the Audit Trail.

Exposes the entry gateway at a single endpoint:
- GET  /exec?action=read   read all entries
- POST /exec               create an entry or delete one by row number

Invariants:
    - Every response is JSON with a status field
    - Failures are reported as status "error" with HTTP 200
"""

from .app import create_app
from .config import Settings

__all__ = [
    "create_app",
    "Settings",
]
