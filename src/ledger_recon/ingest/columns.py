"""
Column discovery for bank-statement exports.

Headers vary per bank and language; they are mapped onto canonical fields
by alias substring containment on the lower-cased header text.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Checked in this order for every header
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "transaction date", "trans date", "posting date", "value date", "تاريخ"),
    "description": (
        "description",
        "merchant",
        "details",
        "narrative",
        "memo",
        "reference",
        "particulars",
        "الوصف",
    ),
    "amount": ("amount", "value", "sum", "debit", "credit", "المبلغ"),
    "currency": ("currency", "ccy", "العملة"),
    "category": ("category", "type", "التصنيف"),
}

REQUIRED_FIELDS = ("date", "description", "amount")

# Format hints sometimes embedded in the date header, e.g. "Date (DD/MM/YYYY)"
_DATE_ORDER_HINTS = (
    ("YMD", re.compile(r"yy[/\-.]mm")),
    ("DMY", re.compile(r"dd[/\-.]mm")),
    ("MDY", re.compile(r"mm[/\-.]dd")),
)


class ColumnDiscoveryError(Exception):
    """Raised when a statement lacks a required column. Aborts the whole import."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__("; ".join(self.messages))

    @property
    def messages(self) -> list[str]:
        """One human-readable message per missing field."""
        return [
            f"Could not find {'an' if name[0] in 'aeiou' else 'a'} {name} column"
            for name in self.missing_fields
        ]


@dataclass(frozen=True)
class ColumnMap:
    """Resolved header name per canonical field."""

    date: str
    description: str
    amount: str
    currency: Optional[str] = None
    category: Optional[str] = None
    # DMY, MDY or YMD; None lets the date parser decide
    date_order: Optional[str] = None


def date_order_from_header(header: str) -> Optional[str]:
    """Day/month order named in a date header, if any."""
    lower_header = header.lower()
    for order, pattern in _DATE_ORDER_HINTS:
        if pattern.search(lower_header):
            return order
    return None


def discover_columns(headers: Iterable[str], date_order: Optional[str] = None) -> ColumnMap:
    """
    Map statement headers to canonical fields.

    The first matching header wins per field.

    Args:
        headers: Header row of the statement
        date_order: Day/month order hint carried on the map; when omitted,
            a format named in the date header ("DD/MM/YYYY") is used

    Returns:
        ColumnMap with the original header names

    Raises:
        ColumnDiscoveryError: If date, description or amount is missing
    """
    found: dict[str, str] = {}
    leftovers: list[tuple[str, list[str]]] = []

    for header in headers:
        lower_header = header.lower().strip()
        if not lower_header:
            continue
        matching = [
            name
            for name, aliases in COLUMN_ALIASES.items()
            if any(alias in lower_header for alias in aliases)
        ]
        if not matching:
            continue
        # A header belongs to the first field it matches ("value date" is a
        # date column even though "value" is also an amount alias)
        if matching[0] not in found:
            found[matching[0]] = header
        else:
            leftovers.append((header, matching[1:]))

    # Headers whose first field was already taken fill a later free field,
    # e.g. "Amount Currency" after "Amount"
    for header, fields in leftovers:
        field_name = next((name for name in fields if name not in found), None)
        if field_name is not None:
            found[field_name] = header

    missing = [name for name in REQUIRED_FIELDS if name not in found]
    if missing:
        raise ColumnDiscoveryError(missing)

    logger.debug("Resolved statement columns: %s", found)
    return ColumnMap(
        date=found["date"],
        description=found["description"],
        amount=found["amount"],
        currency=found.get("currency"),
        category=found.get("category"),
        date_order=date_order or date_order_from_header(found["date"]),
    )
