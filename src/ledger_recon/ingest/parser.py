"""
Row parsing for bulk statement imports.

Turns one raw statement row (header name -> cell text) into an
ImportCandidate. Failures are row-level: the batch helper collects them
and carries on with the remaining rows.
"""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from dateutil import parser as date_parser

from ..schemas import ImportCandidate
from .columns import ColumnMap, discover_columns
from .direction import DirectionStrategy, KeywordDirectionStrategy

logger = logging.getLogger(__name__)

# Explicit day/month/year fallback: 01/02/2026, 1-2-26, 01.02.2026
_DMY_PATTERN = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}($|[T ])")

_AMOUNT_DISALLOWED = re.compile(r"[^\d.,\-]")


class RowParseError(ValueError):
    """Raised when a single statement row cannot be parsed. Skips that row only."""

    pass


@dataclass
class ParsedBatch:
    """Outcome of parsing every row of one statement."""

    column_map: ColumnMap
    candidates: list[ImportCandidate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)  # "Row N: message"
    total_rows: int = 0


def parse_date(value: str, date_order: Optional[str] = None) -> date:
    """
    Parse a statement date.

    General parsing comes first, honouring the column's date order hint
    (DMY resolves "01/02/26" to 1 February 2026). An explicit day/month/year
    pattern is the fallback.

    Raises:
        RowParseError: If neither strategy yields a valid date
    """
    cleaned = value.strip()
    if not cleaned:
        raise RowParseError("Missing date")

    # ISO dates are unambiguous; dateutil would swap day and month under dayfirst
    if _ISO_PATTERN.match(cleaned):
        try:
            return date.fromisoformat(cleaned[:10])
        except ValueError:
            pass

    try:
        return date_parser.parse(
            cleaned,
            dayfirst=date_order == "DMY",
            yearfirst=date_order == "YMD",
        ).date()
    except (ValueError, OverflowError):
        pass

    match = _DMY_PATTERN.match(cleaned)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            pass

    raise RowParseError(f"Invalid date format: {value!r}")


def parse_amount(value: str) -> Decimal:
    """
    Parse a statement amount, keeping its sign.

    Currency symbols, letters and spaces are dropped; commas are treated as
    thousands separators. Accounting negatives like "(12.50)" are honoured.

    Raises:
        RowParseError: If the amount is missing, unparseable or zero
    """
    stripped = value.strip()
    negative = stripped.startswith("(") and stripped.endswith(")")
    cleaned = _AMOUNT_DISALLOWED.sub("", stripped).replace(",", "")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise RowParseError(f"Invalid amount: {value!r}") from e

    if amount == 0:
        raise RowParseError(f"Invalid amount: {value!r}")

    return -abs(amount) if negative else amount


def _cell(row: Mapping[str, Optional[str]], column: Optional[str]) -> str:
    if column is None:
        return ""
    value = row.get(column)
    return value.strip() if isinstance(value, str) else ""


def parse_row(
    raw_row: Mapping[str, Optional[str]],
    column_map: ColumnMap,
    *,
    home_currency: str = "SAR",
    direction_strategy: Optional[DirectionStrategy] = None,
    row_index: Optional[int] = None,
) -> ImportCandidate:
    """
    Parse one statement row into an ImportCandidate.

    Args:
        raw_row: Header name -> cell text
        column_map: Result of discover_columns() for this statement
        home_currency: Currency when the row has none
        direction_strategy: Income/expense inference (keyword heuristic by default)
        row_index: Position of the row in the file, kept on the candidate

    Raises:
        RowParseError: If the row cannot be turned into a valid candidate
    """
    strategy = direction_strategy or KeywordDirectionStrategy()

    date_text = _cell(raw_row, column_map.date)
    description = _cell(raw_row, column_map.description)
    amount_text = _cell(raw_row, column_map.amount)

    if not description:
        raise RowParseError("Missing description")
    if not amount_text:
        raise RowParseError("Missing amount")

    parsed_date = parse_date(date_text, column_map.date_order)
    signed_amount = parse_amount(amount_text)

    try:
        return ImportCandidate(
            date=parsed_date,
            description=description,
            amount=abs(signed_amount),
            currency=_cell(raw_row, column_map.currency).upper() or home_currency,
            direction=strategy.infer(description, signed_amount),
            category=_cell(raw_row, column_map.category) or None,
            row_index=row_index,
        )
    except ValueError as e:
        raise RowParseError(str(e)) from e


def parse_rows(
    headers: Iterable[str],
    rows: Iterable[Mapping[str, Optional[str]]],
    *,
    home_currency: str = "SAR",
    date_order: Optional[str] = None,
    direction_strategy: Optional[DirectionStrategy] = None,
    row_numbers: Optional[Sequence[int]] = None,
) -> ParsedBatch:
    """
    Parse a whole statement.

    Column discovery runs once; a missing required column aborts before any
    row is parsed. Row failures are collected as "Row N: ..." (N counts data
    rows from 1, or is taken from row_numbers when the reader skipped
    blank rows) and the remaining rows are still parsed.

    Raises:
        ColumnDiscoveryError: If date, description or amount column is missing
    """
    column_map = discover_columns(headers, date_order=date_order)
    strategy = direction_strategy or KeywordDirectionStrategy()
    batch = ParsedBatch(column_map=column_map)

    for position, row in enumerate(rows):
        row_number = row_numbers[position] if row_numbers is not None else position + 1
        batch.total_rows += 1
        try:
            batch.candidates.append(
                parse_row(
                    row,
                    column_map,
                    home_currency=home_currency,
                    direction_strategy=strategy,
                    row_index=row_number,
                )
            )
        except RowParseError as e:
            logger.warning("Skipping statement row %d: %s", row_number, e)
            batch.errors.append(f"Row {row_number}: {e}")

    logger.info(
        "Parsed %d/%d statement rows (%d errors)",
        len(batch.candidates),
        batch.total_rows,
        len(batch.errors),
    )
    return batch
