"""
Asset Audit Trail Test Suite.

This package contains:
- unit/: Unit tests (row mapping, stores, gateway, config, table tool)
- integration/: HTTP endpoint and client tests against the ASGI app
"""
