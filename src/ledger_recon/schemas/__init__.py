"""
SSOT (Single Source of Truth) schemas for the engine.

These canonical schemas are the ONLY models used across all modules.
No duplicated "near-same" models allowed.
"""

from .candidate import ImportCandidate
from .ledger import (
    LEDGER_MUTABLE_FIELDS,
    Direction,
    LedgerTransaction,
    NewLedgerTransaction,
)
from .staging import CategoryRule, StagingRecord, StagingStatus

__all__ = [
    "LEDGER_MUTABLE_FIELDS",
    "CategoryRule",
    "Direction",
    "ImportCandidate",
    "LedgerTransaction",
    "NewLedgerTransaction",
    "StagingRecord",
    "StagingStatus",
]
