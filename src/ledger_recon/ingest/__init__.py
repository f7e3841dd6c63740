"""
Bulk-import ingestion: column discovery, row parsing and statement reading.
"""

from .columns import (
    COLUMN_ALIASES,
    ColumnDiscoveryError,
    ColumnMap,
    date_order_from_header,
    discover_columns,
)
from .direction import DirectionStrategy, KeywordDirectionStrategy
from .parser import ParsedBatch, RowParseError, parse_amount, parse_date, parse_row, parse_rows
from .reader import StatementTable, read_statement

__all__ = [
    "COLUMN_ALIASES",
    "ColumnDiscoveryError",
    "ColumnMap",
    "DirectionStrategy",
    "KeywordDirectionStrategy",
    "ParsedBatch",
    "RowParseError",
    "StatementTable",
    "date_order_from_header",
    "discover_columns",
    "parse_amount",
    "parse_date",
    "parse_row",
    "parse_rows",
    "read_statement",
]
