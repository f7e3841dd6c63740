"""
Staging records and learned category rules.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .candidate import ImportCandidate


class StagingStatus(str, Enum):
    """
    Review status of a staged import row.

    Merge is a terminal action that deletes the staging record,
    so it has no status of its own.
    """

    PENDING = "pending"
    APPROVED = "approved"  # Terminal: produced one new ledger transaction
    REJECTED = "rejected"  # Terminal: no ledger effect

    @property
    def is_terminal(self) -> bool:
        return self is not StagingStatus.PENDING


@dataclass
class StagingRecord:
    """An imported transaction awaiting approval, rejection or merge."""

    id: int
    user_id: str
    raw_text: str
    candidate: ImportCandidate
    status: StagingStatus
    created_at: str  # ISO timestamp
    updated_at: str  # ISO timestamp
    potential_match_id: Optional[int] = None
    match_score: Optional[int] = None
    match_reasons: list[str] = field(default_factory=list)
    batch_label: Optional[str] = None  # e.g. source file name

    @property
    def has_match(self) -> bool:
        """True if a probable duplicate was recorded at staging time."""
        return self.potential_match_id is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StagingRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            raw_text=row["raw_text"],
            candidate=ImportCandidate.from_dict(json.loads(row["candidate_json"])),
            status=StagingStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            potential_match_id=row["potential_match_id"],
            match_score=row["match_score"],
            match_reasons=json.loads(row["match_reasons"]) if row["match_reasons"] else [],
            batch_label=row["batch_label"] if "batch_label" in row.keys() else None,
        )


@dataclass
class CategoryRule:
    """Learned merchant keyword → category mapping for one user."""

    id: int
    user_id: str
    merchant_keyword: str
    category: str
    times_applied: int
    confidence: float
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CategoryRule":
        """Create from database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            merchant_keyword=row["merchant_keyword"],
            category=row["category"],
            times_applied=row["times_applied"],
            confidence=row["confidence"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
