"""
Statement file reading.

Reads the header row once and yields cleaned data rows; parsing is left to
parser.parse_rows().
"""

import csv
import logging
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import IO, Union

logger = logging.getLogger(__name__)

StatementSource = Union[Path, str, bytes, IO[str], IO[bytes]]


@dataclass
class StatementTable:
    """Header row plus data rows of a tabular statement."""

    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)  # 1-based data row in the file, per row
    name: str = "statement.csv"


def _read_text(source: StatementSource) -> tuple[str, str]:
    """Return (text, name) for a path, raw text/bytes or file-like object."""
    if isinstance(source, Path):
        return source.read_bytes().decode("utf-8-sig", errors="replace"), source.name

    if hasattr(source, "read"):
        content = source.read()
        name = Path(getattr(source, "name", "statement.csv")).name
    else:
        content = source
        name = "statement.csv"

    if isinstance(content, bytes):
        return content.decode("utf-8-sig", errors="replace"), name
    return content.lstrip("\ufeff"), name


def read_statement(source: StatementSource) -> StatementTable:
    """
    Read a CSV statement.

    - Accepts a Path, CSV text, bytes, or a file-like object.
    - Decodes UTF-8 with BOM.
    - Strips header and cell whitespace.
    - Skips empty rows, keeping each remaining row's position in the file.
    """
    text, name = _read_text(source)
    reader = csv.reader(StringIO(text), skipinitialspace=True)
    headers = [h.strip() for h in next(reader, [])]
    table = StatementTable(headers=headers, name=name)

    for i, cells in enumerate(reader, start=1):
        values = [cell.strip() for cell in cells]
        if not any(values):
            logger.debug("Skipping empty statement row at data index %d", i)
            continue
        # Cells beyond the header are dropped; short rows are padded
        values += [""] * (len(headers) - len(values))
        table.rows.append(dict(zip(headers, values)))
        table.row_numbers.append(i)

    logger.debug("Read %d rows from %s", len(table.rows), name)
    return table
