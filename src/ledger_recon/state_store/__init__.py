"""
Persistence for the ledger, the staging area and learned category rules.
"""

from .base import LedgerStore, LedgerStoreError
from .sqlite_store import StateStore

__all__ = ["LedgerStore", "LedgerStoreError", "StateStore"]
