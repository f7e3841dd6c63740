"""
Ledger transaction shapes.

The ledger store owns these rows; the engine only reads them and requests
inserts, updates and deletes through the LedgerStore interface.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class Direction(str, Enum):
    """Money flow relative to the user."""

    IN = "in"  # Income, refunds, deposits
    OUT = "out"  # Expenses, withdrawals


# Fields a reviewer may change through update/merge.
# id, user_id and created_at are never writable.
LEDGER_MUTABLE_FIELDS = (
    "amount",
    "currency",
    "direction",
    "category",
    "merchant",
    "transaction_date",
    "account_id",
)


@dataclass
class LedgerTransaction:
    """A confirmed transaction in the ledger."""

    id: int
    user_id: str
    amount: Decimal  # Always positive
    currency: str
    direction: Direction
    category: str
    merchant: Optional[str]
    transaction_date: date
    created_at: str  # ISO timestamp
    account_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LedgerTransaction":
        """Create from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            direction=Direction(row["direction"]),
            category=row["category"],
            merchant=row["merchant"],
            transaction_date=date.fromisoformat(row["transaction_date"]),
            created_at=row["created_at"],
            account_id=row["account_id"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "direction": self.direction.value,
            "category": self.category,
            "merchant": self.merchant,
            "transaction_date": self.transaction_date.isoformat(),
            "created_at": self.created_at,
            "account_id": self.account_id,
        }


@dataclass
class NewLedgerTransaction:
    """Field set for inserting a ledger transaction."""

    amount: Decimal
    currency: str
    direction: Direction
    category: str
    merchant: Optional[str]
    transaction_date: date
    account_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"amount must be positive, got: {self.amount}")
        if not self.category:
            raise ValueError("category is required")
