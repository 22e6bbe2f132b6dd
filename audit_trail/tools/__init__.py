"""
Operational tools for the Audit Trail.

- table_cli: Initialize, verify and list the audit trail table
"""
