"""
CLI runner module.

Provides commands:
- import: Stage a CSV bank statement
- pending: List records awaiting review
- approve / merge / reject: Review one record
- bulk-approve: Approve every record without a possible duplicate
- status: Ledger and staging statistics
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
