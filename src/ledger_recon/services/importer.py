"""Statement import orchestration.

Reads a statement, parses every row, checks each candidate against the
user's ledger window and stages it. Row-level problems never abort the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ledger_recon.ingest import (
    ColumnDiscoveryError,
    KeywordDirectionStrategy,
    parse_rows,
    read_statement,
)
from ledger_recon.ingest.direction import DirectionStrategy
from ledger_recon.matching import best_match, window_bounds
from ledger_recon.schemas import ImportCandidate, StagingRecord
from ledger_recon.services.staging import PersistenceError, StagingService
from ledger_recon.state_store.base import LedgerStoreError

if TYPE_CHECKING:
    from ledger_recon.config import Config
    from ledger_recon.ingest.reader import StatementSource
    from ledger_recon.state_store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Result of importing one statement."""

    success: bool = False  # False only when the statement could not be processed at all
    total_rows: int = 0
    staged: int = 0
    duplicates: int = 0  # Staged rows with a recorded potential match
    staging_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class ImportService:
    """Bulk import of bank statements into the staging area.

    Usage:
        service = ImportService(store, config)
        result = service.import_statement(Path("statement.csv"), user_id="user-1")
    """

    def __init__(
        self,
        store: LedgerStore,
        config: Config,
        staging: Optional[StagingService] = None,
        direction_strategy: Optional[DirectionStrategy] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.staging = staging or StagingService(store, config)
        self.direction_strategy = direction_strategy or KeywordDirectionStrategy(
            config.ingest.income_keywords
        )

    def import_statement(
        self,
        source: StatementSource,
        user_id: str,
        batch_label: Optional[str] = None,
        date_order: Optional[str] = None,
    ) -> ImportResult:
        """Parse, match and stage every row of a statement.

        Args:
            source: Path to a CSV file, CSV text/bytes or a file-like object
            user_id: Owner of the ledger the rows are checked against
            batch_label: Label stored on each staged row (defaults to the file name)
            date_order: DMY/MDY/YMD hint for ambiguous dates (defaults to config)

        Returns:
            ImportResult. Missing required columns stage nothing and
            report each missing column once.
        """
        result = ImportResult()

        try:
            table = read_statement(source)
        except (OSError, UnicodeError) as e:
            logger.exception("Could not read statement")
            result.errors.append(f"Could not read statement: {e}")
            return result

        label = batch_label or table.name

        try:
            batch = parse_rows(
                table.headers,
                table.rows,
                home_currency=self.config.ingest.home_currency,
                date_order=date_order or self.config.ingest.date_order,
                direction_strategy=self.direction_strategy,
                row_numbers=table.row_numbers,
            )
        except ColumnDiscoveryError as e:
            logger.warning("Statement %s rejected: %s", label, e)
            result.total_rows = len(table.rows)
            result.errors.extend(e.messages)
            return result

        result.total_rows = batch.total_rows
        result.errors.extend(batch.errors)

        for candidate in batch.candidates:
            try:
                record = self.stage_candidate(user_id, candidate, batch_label=label)
            except PersistenceError as e:
                logger.warning("Could not stage row %s: %s", candidate.row_index, e)
                result.errors.append(f"Row {candidate.row_index}: {e}")
                continue

            result.staged += 1
            result.staging_ids.append(record.id)
            if record.has_match:
                result.duplicates += 1

        result.success = True
        logger.info(
            "Imported %s for user %s: %d/%d rows staged, %d possible duplicates, %d errors",
            label,
            user_id,
            result.staged,
            result.total_rows,
            result.duplicates,
            len(result.errors),
        )
        return result

    def stage_candidate(
        self,
        user_id: str,
        candidate: ImportCandidate,
        raw_text: Optional[str] = None,
        batch_label: Optional[str] = None,
    ) -> StagingRecord:
        """Match one candidate against the ledger window and stage it.

        Also the entry point for candidates built from free text
        (ImportCandidate.from_extraction) or direct entry.

        Raises:
            PersistenceError: If the ledger window query or staging fails
        """
        start, end, min_amount, max_amount = window_bounds(candidate, self.config.matching)
        try:
            window = self.store.query_window(user_id, start, end, min_amount, max_amount)
        except LedgerStoreError as e:
            raise PersistenceError(None, f"ledger window query failed: {e}") from e

        match = best_match(candidate, window, self.config.matching)
        return self.staging.stage(
            user_id,
            candidate,
            match=match,
            batch_label=batch_label,
            raw_text=raw_text,
        )
