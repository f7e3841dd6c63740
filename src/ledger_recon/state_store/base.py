"""
Ledger store interface.

The engine talks to persistence only through this interface. Each method is
one atomic write or read; no transaction spans two calls.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ..schemas import (
    CategoryRule,
    ImportCandidate,
    LedgerTransaction,
    NewLedgerTransaction,
    StagingRecord,
    StagingStatus,
)


class LedgerStoreError(Exception):
    """Raised by a LedgerStore when the backing storage fails."""

    pass


class LedgerStore(ABC):
    """
    Read/write access to the ledger, the staging area and learned rules.

    Implementations must give per-record atomicity for every write and
    report storage failures as LedgerStoreError.
    """

    # Ledger transactions

    @abstractmethod
    def query_window(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        min_amount: Decimal,
        max_amount: Decimal,
    ) -> list[LedgerTransaction]:
        """Ledger rows of one user inside an inclusive date and amount window."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[LedgerTransaction]:
        pass

    @abstractmethod
    def insert_transaction(self, user_id: str, fields: NewLedgerTransaction) -> LedgerTransaction:
        pass

    @abstractmethod
    def update_transaction(
        self, transaction_id: int, fields: Mapping[str, Any]
    ) -> Optional[LedgerTransaction]:
        """
        Update mutable fields (see LEDGER_MUTABLE_FIELDS).

        Returns:
            The updated transaction, or None if it does not exist
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> bool:
        pass

    @abstractmethod
    def list_transactions(self, user_id: str) -> list[LedgerTransaction]:
        pass

    # Staging records

    @abstractmethod
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
        pass

    @abstractmethod
    def get_staging(self, staging_id: int) -> Optional[StagingRecord]:
        pass

    @abstractmethod
    def list_staging(
        self, user_id: str, status: Optional[StagingStatus] = None
    ) -> list[StagingRecord]:
        """Staging records of one user, newest first."""
        pass

    @abstractmethod
    def transition_staging(
        self, staging_id: int, from_status: StagingStatus, to_status: StagingStatus
    ) -> bool:
        """
        Move a record between statuses if it is still in from_status.

        Returns:
            False if the record is missing or no longer in from_status
        """
        pass

    @abstractmethod
    def delete_staging(self, staging_id: int) -> bool:
        pass

    # Category rules

    @abstractmethod
    def upsert_category_rule(self, user_id: str, merchant_keyword: str, category: str) -> CategoryRule:
        """Insert a rule, or update its category and bump times_applied."""
        pass

    @abstractmethod
    def get_category_rules(self, user_id: str) -> list[CategoryRule]:
        pass

    @abstractmethod
    def find_category_rule(self, user_id: str, merchant: str) -> Optional[CategoryRule]:
        """Most-applied rule whose keyword occurs in the merchant text."""
        pass
