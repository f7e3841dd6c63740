"""
Canonical import candidate (SSOT).

Every source (bulk statement rows, text-understanding results, direct entry)
maps into ImportCandidate before matching or staging. The shape is closed:
values are validated once, at construction.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .ledger import Direction


def _coerce_date(value: Any) -> date:
    """Accept date, datetime or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise ValueError(f"date must be YYYY-MM-DD, got: {value!r}") from e
    raise ValueError(f"date must be a date or ISO string, got: {type(value).__name__}")


def _coerce_amount(value: Any) -> Decimal:
    """Accept Decimal, int, float or numeric string."""
    if isinstance(value, bool):
        raise ValueError("amount must be numeric, got: bool")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"amount must be numeric, got: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"amount must be finite, got: {value!r}")
    return amount


@dataclass(frozen=True)
class ImportCandidate:
    """A transaction-shaped payload awaiting matching and staging."""

    date: date
    description: str
    amount: Decimal  # Always positive; direction carries the sign
    currency: str  # ISO code, upper-case
    direction: Direction = Direction.OUT
    category: Optional[str] = None  # Hint from the source, not yet confirmed
    row_index: Optional[int] = None  # Position in the source file, if any

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", _coerce_date(self.date))

        amount = _coerce_amount(self.amount)
        if amount <= 0:
            raise ValueError(f"amount must be positive, got: {amount}")
        object.__setattr__(self, "amount", amount)

        if not isinstance(self.description, str):
            raise ValueError("description must be a string")
        object.__setattr__(self, "description", self.description.strip())

        currency = (self.currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValueError(f"currency must be a 3-letter code, got: {self.currency!r}")
        object.__setattr__(self, "currency", currency)

        object.__setattr__(self, "direction", Direction(self.direction))

        category = self.category.strip() if isinstance(self.category, str) else None
        object.__setattr__(self, "category", category or None)

    @property
    def raw_text(self) -> str:
        """Display line shown to reviewers."""
        return f"{self.date.isoformat()} | {self.description} | {self.amount} {self.currency}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": str(self.amount),
            "currency": self.currency,
            "direction": self.direction.value,
            "category": self.category,
            "row_index": self.row_index,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportCandidate":
        """Create from dictionary (inverse of to_dict)."""
        return cls(
            date=data["date"],
            description=data.get("description") or "",
            amount=data["amount"],
            currency=data["currency"],
            direction=data.get("direction", Direction.OUT.value),
            category=data.get("category"),
            row_index=data.get("row_index"),
        )

    @classmethod
    def from_extraction(
        cls,
        data: Mapping[str, Any],
        home_currency: str,
        default_date: Optional[date] = None,
    ) -> "ImportCandidate":
        """
        Build a candidate from a text-understanding parse result.

        The parse result carries amount, currency, direction, category and
        merchant; date is optional and falls back to default_date (today).

        Args:
            data: Structured fields returned by the external parser
            home_currency: Currency to use when none was detected
            default_date: Date to use when none was detected

        Raises:
            ValueError: If amount is missing or invalid
        """
        if data.get("amount") is None:
            raise ValueError("parse result has no amount")

        amount = _coerce_amount(data["amount"])

        return cls(
            date=data.get("date") or default_date or date.today(),
            description=data.get("merchant") or data.get("description") or "",
            amount=abs(amount),
            currency=data.get("currency") or home_currency,
            direction=data.get("direction") or Direction.OUT,
            category=data.get("category"),
        )
