"""Services layer: staging lifecycle and statement import orchestration."""

from ledger_recon.services.importer import ImportResult, ImportService
from ledger_recon.services.staging import (
    ApprovalResult,
    BulkApprovalResult,
    BulkDefaults,
    InvalidTransitionError,
    LedgerOverrides,
    LedgerTransactionNotFoundError,
    MergeResult,
    PendingReview,
    PersistenceError,
    RuleLearningResult,
    RuleLearningStatus,
    StagingError,
    StagingNotFoundError,
    StagingService,
)

__all__ = [
    "ApprovalResult",
    "BulkApprovalResult",
    "BulkDefaults",
    "ImportResult",
    "ImportService",
    "InvalidTransitionError",
    "LedgerOverrides",
    "LedgerTransactionNotFoundError",
    "MergeResult",
    "PendingReview",
    "PersistenceError",
    "RuleLearningResult",
    "RuleLearningStatus",
    "StagingError",
    "StagingNotFoundError",
    "StagingService",
]
