"""
SQLite-based ledger store implementation.

Tables:
- ledger_transactions: Confirmed transactions (the ledger)
- staging_records: Imported rows awaiting review
- category_rules: Learned merchant keyword -> category mappings (migration 001)
"""

import json
import logging
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from ..schemas import (
    LEDGER_MUTABLE_FIELDS,
    CategoryRule,
    Direction,
    ImportCandidate,
    LedgerTransaction,
    NewLedgerTransaction,
    StagingRecord,
    StagingStatus,
)
from .base import LedgerStore, LedgerStoreError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_column_value(field_name: str, value: Any) -> Any:
    """Convert a ledger field value to its stored representation."""
    if value is None:
        return None
    if field_name == "amount":
        amount = Decimal(str(value))
        if amount <= 0:
            raise ValueError(f"amount must be positive, got: {value}")
        return str(amount)
    if field_name == "transaction_date":
        return value.isoformat() if isinstance(value, date) else date.fromisoformat(str(value)).isoformat()
    if field_name == "direction":
        return Direction(value).value
    if field_name == "currency":
        return str(value).upper()
    return value


class StateStore(LedgerStore):
    """
    SQLite-based store for the ledger and the staging area.

    Provides persistent tracking of:
    - Ledger transactions
    - Staged import rows and their recorded duplicate match
    - Learned category rules

    One connection per call; every method commits or rolls back on its own.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str, run_migrations: bool = True):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file
            run_migrations: Whether to run pending migrations (default True)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        if run_migrations:
            self._run_migrations()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions.

        sqlite3 errors leave as LedgerStoreError, chained from the original.
        """
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Could not open {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise LedgerStoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    amount TEXT NOT NULL,  -- Decimal as text, always positive
                    currency TEXT NOT NULL,
                    direction TEXT NOT NULL CHECK (direction IN ('in', 'out')),
                    category TEXT NOT NULL,
                    merchant TEXT,
                    transaction_date TEXT NOT NULL,  -- YYYY-MM-DD
                    account_id TEXT,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS staging_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    raw_text TEXT NOT NULL,
                    candidate_json TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'approved', 'rejected')),
                    potential_match_id INTEGER,
                    match_score INTEGER,
                    match_reasons TEXT,  -- JSON array
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (potential_match_id)
                        REFERENCES ledger_transactions(id) ON DELETE SET NULL
                )
            """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_ledger_user_date "
                "ON ledger_transactions(user_id, transaction_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_staging_user_status "
                "ON staging_records(user_id, status)"
            )

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
            )

    def _run_migrations(self) -> None:
        """Run pending database migrations."""
        from .migrations import MigrationRunner

        conn = self._get_connection()
        try:
            MigrationRunner(conn).run_pending()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Migration failed: {e}") from e
        finally:
            conn.close()

    # Ledger transaction methods

    def query_window(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        min_amount: Decimal,
        max_amount: Decimal,
    ) -> list[LedgerTransaction]:
        # Amounts are stored as text, so the amount bound is applied in Decimal
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM ledger_transactions
                WHERE user_id = ? AND transaction_date BETWEEN ? AND ?
                ORDER BY id
            """,
                (user_id, start_date.isoformat(), end_date.isoformat()),
            ).fetchall()

        window = []
        for row in rows:
            tx = LedgerTransaction.from_row(row)
            if min_amount <= tx.amount <= max_amount:
                window.append(tx)
        return window

    def get_transaction(self, transaction_id: int) -> Optional[LedgerTransaction]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM ledger_transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
            return LedgerTransaction.from_row(row) if row else None

    def list_transactions(self, user_id: str) -> list[LedgerTransaction]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM ledger_transactions
                WHERE user_id = ?
                ORDER BY transaction_date DESC, id DESC
            """,
                (user_id,),
            ).fetchall()
            return [LedgerTransaction.from_row(row) for row in rows]

    def insert_transaction(self, user_id: str, fields: NewLedgerTransaction) -> LedgerTransaction:
        now = _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO ledger_transactions
                (user_id, amount, currency, direction, category, merchant,
                 transaction_date, account_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    user_id,
                    str(fields.amount),
                    fields.currency.upper(),
                    Direction(fields.direction).value,
                    fields.category,
                    fields.merchant,
                    fields.transaction_date.isoformat(),
                    fields.account_id,
                    now,
                ),
            )
            row = conn.execute(
                "SELECT * FROM ledger_transactions WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()

        tx = LedgerTransaction.from_row(row)
        logger.debug("Inserted ledger transaction %d for user %s", tx.id, user_id)
        return tx

    def update_transaction(
        self, transaction_id: int, fields: Mapping[str, Any]
    ) -> Optional[LedgerTransaction]:
        unknown = sorted(set(fields) - set(LEDGER_MUTABLE_FIELDS))
        if unknown:
            raise ValueError(f"Cannot update ledger fields: {', '.join(unknown)}")

        with self._transaction() as conn:
            if fields:
                # Column names come from LEDGER_MUTABLE_FIELDS only
                assignments = ", ".join(f"{name} = ?" for name in fields)
                values = [_to_column_value(name, value) for name, value in fields.items()]
                conn.execute(
                    f"UPDATE ledger_transactions SET {assignments} WHERE id = ?",
                    (*values, transaction_id),
                )
            row = conn.execute(
                "SELECT * FROM ledger_transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
            return LedgerTransaction.from_row(row) if row else None

    def delete_transaction(self, transaction_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM ledger_transactions WHERE id = ?", (transaction_id,)
            )
            return cursor.rowcount > 0

    # Staging methods

    def create_staging(
        self,
        user_id: str,
        candidate: ImportCandidate,
        raw_text: str,
        batch_label: Optional[str] = None,
        potential_match_id: Optional[int] = None,
        match_score: Optional[int] = None,
        match_reasons: Optional[list[str]] = None,
    ) -> StagingRecord:
        now = _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO staging_records
                (user_id, raw_text, candidate_json, status, potential_match_id,
                 match_score, match_reasons, batch_label, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    user_id,
                    raw_text,
                    json.dumps(candidate.to_dict(), ensure_ascii=False),
                    StagingStatus.PENDING.value,
                    potential_match_id,
                    match_score,
                    json.dumps(match_reasons or [], ensure_ascii=False),
                    batch_label,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                "SELECT * FROM staging_records WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return StagingRecord.from_row(row)

    def get_staging(self, staging_id: int) -> Optional[StagingRecord]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM staging_records WHERE id = ?", (staging_id,)
            ).fetchone()
            return StagingRecord.from_row(row) if row else None

    def list_staging(
        self, user_id: str, status: Optional[StagingStatus] = None
    ) -> list[StagingRecord]:
        with self._transaction() as conn:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM staging_records WHERE user_id = ? ORDER BY id DESC",
                    (user_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM staging_records
                    WHERE user_id = ? AND status = ?
                    ORDER BY id DESC
                """,
                    (user_id, StagingStatus(status).value),
                ).fetchall()
            return [StagingRecord.from_row(row) for row in rows]

    def transition_staging(
        self, staging_id: int, from_status: StagingStatus, to_status: StagingStatus
    ) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE staging_records
                SET status = ?, updated_at = ?
                WHERE id = ? AND status = ?
            """,
                (to_status.value, _now(), staging_id, from_status.value),
            )
            return cursor.rowcount > 0

    def delete_staging(self, staging_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM staging_records WHERE id = ?", (staging_id,))
            return cursor.rowcount > 0

    # Category rule methods

    def upsert_category_rule(self, user_id: str, merchant_keyword: str, category: str) -> CategoryRule:
        now = _now()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO category_rules
                (user_id, merchant_keyword, category, times_applied, confidence,
                 created_at, updated_at)
                VALUES (?, ?, ?, 1, 1.0, ?, ?)
                ON CONFLICT(user_id, merchant_keyword) DO UPDATE SET
                    category = excluded.category,
                    times_applied = category_rules.times_applied + 1,
                    updated_at = excluded.updated_at
            """,
                (user_id, merchant_keyword, category, now, now),
            )
            row = conn.execute(
                "SELECT * FROM category_rules WHERE user_id = ? AND merchant_keyword = ?",
                (user_id, merchant_keyword),
            ).fetchone()
            return CategoryRule.from_row(row)

    def get_category_rules(self, user_id: str) -> list[CategoryRule]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM category_rules
                WHERE user_id = ?
                ORDER BY times_applied DESC, confidence DESC, id
            """,
                (user_id,),
            ).fetchall()
            return [CategoryRule.from_row(row) for row in rows]

    def find_category_rule(self, user_id: str, merchant: str) -> Optional[CategoryRule]:
        if not merchant:
            return None
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM category_rules
                WHERE user_id = ? AND instr(?, merchant_keyword) > 0
                ORDER BY times_applied DESC, confidence DESC, id
                LIMIT 1
            """,
                (user_id, merchant),
            ).fetchone()
            return CategoryRule.from_row(row) if row else None

    # Statistics

    def get_stats(self, user_id: Optional[str] = None) -> dict[str, Any]:
        """Get ledger and staging counts, optionally for one user."""
        where = "WHERE user_id = ?" if user_id is not None else ""
        params: tuple[Any, ...] = (user_id,) if user_id is not None else ()

        with self._transaction() as conn:
            ledger = conn.execute(
                f"SELECT COUNT(*) as count FROM ledger_transactions {where}", params
            ).fetchone()
            by_status = conn.execute(
                f"SELECT status, COUNT(*) as count FROM staging_records {where} GROUP BY status",
                params,
            ).fetchall()
            rules = conn.execute(
                f"SELECT COUNT(*) as count FROM category_rules {where}", params
            ).fetchone()

        staging = {status.value: 0 for status in StagingStatus}
        for row in by_status:
            staging[row["status"]] = row["count"]

        return {
            "ledger_transactions": ledger["count"] if ledger else 0,
            "staging_pending": staging[StagingStatus.PENDING.value],
            "staging_approved": staging[StagingStatus.APPROVED.value],
            "staging_rejected": staging[StagingStatus.REJECTED.value],
            "category_rules": rules["count"] if rules else 0,
        }
