"""Staging lifecycle service.

Every imported or parsed transaction waits in the staging area until a
reviewer acts on it:
- approve: create a new ledger transaction, mark the record approved
- merge: fold the record into an existing ledger transaction, delete the record
- reject: mark the record rejected, no ledger effect

Approved and rejected records are terminal. Category corrections made while
approving or merging are learned as per-user merchant rules.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from ledger_recon.matching import MatchResult, normalize_merchant_name
from ledger_recon.schemas import (
    CategoryRule,
    Direction,
    ImportCandidate,
    LedgerTransaction,
    NewLedgerTransaction,
    StagingRecord,
    StagingStatus,
)
from ledger_recon.state_store.base import LedgerStoreError

if TYPE_CHECKING:
    from ledger_recon.config import Config
    from ledger_recon.state_store import LedgerStore

logger = logging.getLogger(__name__)


class StagingError(Exception):
    """Base exception for staging lifecycle errors."""

    pass


class StagingNotFoundError(StagingError):
    """No staging record with the given id."""

    def __init__(self, staging_id: int):
        self.staging_id = staging_id
        super().__init__(f"Staging record {staging_id} not found")


class InvalidTransitionError(StagingError):
    """The record is not pending, so the requested action is not allowed."""

    def __init__(self, staging_id: int, status: StagingStatus | str, action: str):
        self.staging_id = staging_id
        self.status = StagingStatus(status)
        self.action = action
        super().__init__(
            f"Cannot {action} staging record {staging_id}: status is {self.status.value}"
        )


class LedgerTransactionNotFoundError(StagingError):
    """Merge target does not exist in the reviewer's ledger."""

    def __init__(self, transaction_id: int):
        self.transaction_id = transaction_id
        super().__init__(f"Ledger transaction {transaction_id} not found")


class PersistenceError(StagingError):
    """The ledger store failed while acting on a staging record."""

    def __init__(self, staging_id: int | None, message: str):
        self.staging_id = staging_id
        super().__init__(f"Staging record {staging_id}: {message}")


@dataclass
class LedgerOverrides:
    """Reviewer edits applied on approve or merge. None means "not edited"."""

    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    direction: Optional[Direction] = None
    category: Optional[str] = None
    merchant: Optional[str] = None
    transaction_date: Optional[date] = None
    account_id: Optional[str] = None

    def explicit_fields(self) -> dict[str, Any]:
        """Fields the reviewer actually set."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }


class RuleLearningStatus(str, Enum):
    """Outcome of learning a category rule from a review action."""

    RECORDED = "RECORDED"  # Rule inserted or reinforced
    NOT_NEEDED = "NOT_NEEDED"  # Category was not corrected
    SKIPPED = "SKIPPED"  # Corrected, but no usable merchant text
    FAILED = "FAILED"  # Store error; the review action itself still succeeded


@dataclass
class RuleLearningResult:
    """Result of the rule-learning side effect."""

    status: RuleLearningStatus
    rule: Optional[CategoryRule] = None
    error: Optional[str] = None


@dataclass
class ApprovalResult:
    """Result of approving one staging record."""

    record: StagingRecord
    transaction: LedgerTransaction
    rule_learning: RuleLearningResult


@dataclass
class MergeResult:
    """Result of merging one staging record into a ledger transaction."""

    staging_id: int
    transaction: LedgerTransaction  # Target after the update
    previous: LedgerTransaction  # Target before the update
    rule_learning: RuleLearningResult


@dataclass
class BulkDefaults:
    """Values applied to every record of a bulk approval."""

    account_id: Optional[str] = None
    category: Optional[str] = None  # Used when the row has no category hint


@dataclass
class BulkApprovalResult:
    """Result of a bulk approval."""

    approved_count: int = 0
    approved_ids: list[int] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class PendingReview:
    """A pending record with its recorded duplicate match, if any."""

    record: StagingRecord
    match: Optional[MatchResult] = None


class StagingService:
    """Owns the staging state machine.

    Usage:
        service = StagingService(store, config)
        record = service.stage("user-1", candidate, match=best)
        result = service.approve(record.id, LedgerOverrides(category="Food"))
    """

    def __init__(self, store: LedgerStore, config: Config) -> None:
        self.store = store
        self.config = config
        self.default_category = config.ingest.default_category

    # Queries

    def get(self, staging_id: int) -> StagingRecord:
        """Load a staging record.

        Raises:
            StagingNotFoundError: If it does not exist
            PersistenceError: If the store fails
        """
        try:
            record = self.store.get_staging(staging_id)
        except LedgerStoreError as e:
            raise PersistenceError(staging_id, f"load failed: {e}") from e
        if record is None:
            raise StagingNotFoundError(staging_id)
        return record

    def list_pending(self, user_id: str) -> list[StagingRecord]:
        """Pending records of one user, newest first."""
        try:
            return self.store.list_staging(user_id, StagingStatus.PENDING)
        except LedgerStoreError as e:
            raise PersistenceError(None, f"listing pending records failed: {e}") from e

    def pending_reviews(self, user_id: str) -> list[PendingReview]:
        """Pending records, each with its stored match rebuilt against the current ledger row.

        A match whose ledger row has since been deleted is dropped.
        """
        reviews = []
        for record in self.list_pending(user_id):
            match = None
            if record.potential_match_id is not None:
                try:
                    tx = self.store.get_transaction(record.potential_match_id)
                except LedgerStoreError as e:
                    raise PersistenceError(record.id, f"loading match failed: {e}") from e
                if tx is not None:
                    match = MatchResult(
                        transaction=tx,
                        score=record.match_score or 0,
                        reasons=list(record.match_reasons),
                    )
            reviews.append(PendingReview(record=record, match=match))
        return reviews

    def suggest_category(self, user_id: str, merchant: str) -> Optional[str]:
        """Category learned for a merchant, if any rule matches."""
        keyword = normalize_merchant_name(merchant)
        if not keyword:
            return None
        rule = self.store.find_category_rule(user_id, keyword)
        return rule.category if rule else None

    # Transitions

    def stage(
        self,
        user_id: str,
        candidate: ImportCandidate,
        match: Optional[MatchResult] = None,
        batch_label: Optional[str] = None,
        raw_text: Optional[str] = None,
    ) -> StagingRecord:
        """Create a pending staging record, recording the best duplicate match.

        Raises:
            PersistenceError: If the store fails
        """
        try:
            record = self.store.create_staging(
                user_id,
                candidate,
                raw_text=raw_text or candidate.raw_text,
                batch_label=batch_label,
                potential_match_id=match.transaction_id if match else None,
                match_score=match.score if match else None,
                match_reasons=list(match.reasons) if match else [],
            )
        except LedgerStoreError as e:
            raise PersistenceError(None, f"staging failed: {e}") from e

        if match:
            logger.info(
                "Staged record %d for user %s (possible duplicate of %d, score %d)",
                record.id,
                user_id,
                match.transaction_id,
                match.score,
            )
        else:
            logger.info("Staged record %d for user %s", record.id, user_id)
        return record

    def approve(
        self, staging_id: int, overrides: Optional[LedgerOverrides] = None
    ) -> ApprovalResult:
        """Approve a pending record as a new ledger transaction.

        Raises:
            StagingNotFoundError: If the record does not exist
            InvalidTransitionError: If the record is not pending
            PersistenceError: If the store fails; no ledger row is left behind
            ValueError: If the overrides produce an invalid transaction
        """
        overrides = overrides or LedgerOverrides()
        record = self._load_pending(staging_id, "approve")
        candidate = record.candidate

        fields = NewLedgerTransaction(
            amount=overrides.amount if overrides.amount is not None else candidate.amount,
            currency=(overrides.currency or candidate.currency).upper(),
            direction=Direction(overrides.direction or candidate.direction),
            category=overrides.category or candidate.category or self.default_category,
            merchant=overrides.merchant or candidate.description or None,
            transaction_date=overrides.transaction_date or candidate.date,
            account_id=overrides.account_id,
        )

        tx = self._commit_approval(record, fields)
        rule_learning = self._learn_category(record.user_id, candidate, overrides, fields.merchant)

        logger.info(
            "Approved staging record %d as ledger transaction %d (%s %s, %s)",
            staging_id,
            tx.id,
            tx.amount,
            tx.currency,
            tx.category,
        )
        return ApprovalResult(
            record=dataclasses.replace(record, status=StagingStatus.APPROVED),
            transaction=tx,
            rule_learning=rule_learning,
        )

    def merge(
        self,
        staging_id: int,
        target_ledger_id: int,
        overrides: Optional[LedgerOverrides] = None,
    ) -> MergeResult:
        """Fold a pending record into an existing ledger transaction.

        The target's merchant and category take the override, else the
        record's values; amount, date, direction, currency and account change
        only when explicitly overridden. The staging record is deleted.

        Raises:
            StagingNotFoundError: If the record does not exist
            InvalidTransitionError: If the record is not pending
            LedgerTransactionNotFoundError: If the target is missing or belongs to another user
            PersistenceError: If the store fails; the target keeps its prior values
        """
        overrides = overrides or LedgerOverrides()
        record = self._load_pending(staging_id, "merge")
        candidate = record.candidate

        try:
            target = self.store.get_transaction(target_ledger_id)
        except LedgerStoreError as e:
            raise PersistenceError(staging_id, f"loading merge target failed: {e}") from e
        if target is None or target.user_id != record.user_id:
            raise LedgerTransactionNotFoundError(target_ledger_id)

        if record.potential_match_id is not None and record.potential_match_id != target_ledger_id:
            logger.info(
                "Merging staging record %d into %d instead of suggested match %d",
                staging_id,
                target_ledger_id,
                record.potential_match_id,
            )

        updates = overrides.explicit_fields()
        updates["merchant"] = overrides.merchant or candidate.description or target.merchant
        updates["category"] = overrides.category or candidate.category or target.category

        try:
            updated = self.store.update_transaction(target_ledger_id, updates)
        except LedgerStoreError as e:
            raise PersistenceError(staging_id, f"updating merge target failed: {e}") from e
        if updated is None:
            raise LedgerTransactionNotFoundError(target_ledger_id)

        try:
            deleted = self.store.delete_staging(staging_id)
        except LedgerStoreError as e:
            self._restore_target(target)
            raise PersistenceError(staging_id, f"deleting staging record failed: {e}") from e
        if not deleted:
            # Removed concurrently; undo the ledger update
            self._restore_target(target)
            raise StagingNotFoundError(staging_id)

        rule_learning = self._learn_category(
            record.user_id, candidate, overrides, updated.merchant
        )
        logger.info("Merged staging record %d into ledger transaction %d", staging_id, updated.id)
        return MergeResult(
            staging_id=staging_id,
            transaction=updated,
            previous=target,
            rule_learning=rule_learning,
        )

    def reject(self, staging_id: int) -> StagingRecord:
        """Reject a pending record. The ledger is not touched.

        Raises:
            StagingNotFoundError: If the record does not exist
            InvalidTransitionError: If the record is not pending
            PersistenceError: If the store fails
        """
        record = self._load_pending(staging_id, "reject")
        try:
            changed = self.store.transition_staging(
                staging_id, StagingStatus.PENDING, StagingStatus.REJECTED
            )
        except LedgerStoreError as e:
            raise PersistenceError(staging_id, f"reject failed: {e}") from e
        if not changed:
            raise self._transition_conflict(staging_id, "reject")

        logger.info("Rejected staging record %d", staging_id)
        return dataclasses.replace(record, status=StagingStatus.REJECTED)

    def bulk_approve_non_duplicates(
        self,
        staging_ids: Iterable[int],
        defaults: Optional[BulkDefaults] = None,
        user_id: Optional[str] = None,
    ) -> BulkApprovalResult:
        """Approve every listed record that is pending and has no recorded match.

        Other ids (matched, non-pending, unknown, or owned by someone other
        than user_id when it is given) are skipped untouched.
        Per-record failures are collected; no rules are learned.
        """
        defaults = defaults or BulkDefaults()
        result = BulkApprovalResult()

        for staging_id in staging_ids:
            try:
                record = self.store.get_staging(staging_id)
            except LedgerStoreError as e:
                result.errors.append(f"{staging_id}: {e}")
                continue

            if (
                record is None
                or (user_id is not None and record.user_id != user_id)
                or record.status != StagingStatus.PENDING
                or record.has_match
            ):
                result.skipped_ids.append(staging_id)
                continue

            candidate = record.candidate
            try:
                fields = NewLedgerTransaction(
                    amount=candidate.amount,
                    currency=candidate.currency,
                    direction=candidate.direction,
                    category=candidate.category or defaults.category or self.default_category,
                    merchant=candidate.description or None,
                    transaction_date=candidate.date,
                    account_id=defaults.account_id,
                )
                self._commit_approval(record, fields)
            except InvalidTransitionError:
                # Acted on concurrently since it was read
                result.skipped_ids.append(staging_id)
                continue
            except (StagingError, ValueError) as e:
                logger.warning("Bulk approval of staging record %d failed: %s", staging_id, e)
                result.errors.append(f"{staging_id}: {e}")
                continue

            result.approved_ids.append(staging_id)
            result.approved_count += 1

        logger.info(
            "Bulk approval: %d approved, %d skipped, %d errors",
            result.approved_count,
            len(result.skipped_ids),
            len(result.errors),
        )
        return result

    # Internals

    def _load_pending(self, staging_id: int, action: str) -> StagingRecord:
        record = self.get(staging_id)
        if record.status != StagingStatus.PENDING:
            raise InvalidTransitionError(staging_id, record.status, action)
        return record

    def _transition_conflict(self, staging_id: int, action: str) -> StagingError:
        """Error for a conditional transition that matched no pending row."""
        try:
            current = self.store.get_staging(staging_id)
        except LedgerStoreError as e:
            return PersistenceError(staging_id, f"reloading after {action} failed: {e}")
        if current is None:
            return StagingNotFoundError(staging_id)
        return InvalidTransitionError(staging_id, current.status, action)

    def _commit_approval(self, record: StagingRecord, fields: NewLedgerTransaction) -> LedgerTransaction:
        """Insert the ledger row and mark the record approved, or leave neither."""
        try:
            tx = self.store.insert_transaction(record.user_id, fields)
        except LedgerStoreError as e:
            raise PersistenceError(record.id, f"ledger insert failed: {e}") from e

        try:
            changed = self.store.transition_staging(
                record.id, StagingStatus.PENDING, StagingStatus.APPROVED
            )
        except LedgerStoreError as e:
            self._discard_transaction(tx.id, record.id)
            raise PersistenceError(record.id, f"marking approved failed: {e}") from e

        if not changed:
            self._discard_transaction(tx.id, record.id)
            raise self._transition_conflict(record.id, "approve")
        return tx

    def _discard_transaction(self, transaction_id: int, staging_id: int) -> None:
        try:
            self.store.delete_transaction(transaction_id)
        except LedgerStoreError:
            logger.exception(
                "Could not remove ledger transaction %d after failed approval of staging record %d",
                transaction_id,
                staging_id,
            )
            raise

    def _restore_target(self, target: LedgerTransaction) -> None:
        prior = {
            "amount": target.amount,
            "currency": target.currency,
            "direction": target.direction,
            "category": target.category,
            "merchant": target.merchant,
            "transaction_date": target.transaction_date,
            "account_id": target.account_id,
        }
        try:
            self.store.update_transaction(target.id, prior)
        except LedgerStoreError:
            logger.exception("Could not restore ledger transaction %d after failed merge", target.id)
            raise

    def _learn_category(
        self,
        user_id: str,
        candidate: ImportCandidate,
        overrides: LedgerOverrides,
        merchant: Optional[str],
    ) -> RuleLearningResult:
        """Record a merchant -> category rule when the reviewer corrected the category."""
        if not overrides.category or overrides.category == candidate.category:
            return RuleLearningResult(status=RuleLearningStatus.NOT_NEEDED)

        keyword = normalize_merchant_name(merchant or "")
        if not keyword:
            return RuleLearningResult(status=RuleLearningStatus.SKIPPED)

        try:
            rule = self.store.upsert_category_rule(user_id, keyword, overrides.category)
        except LedgerStoreError as e:
            logger.warning("Could not learn category rule for %r: %s", keyword, e)
            return RuleLearningResult(status=RuleLearningStatus.FAILED, error=str(e))

        logger.debug(
            "Learned category rule %r -> %s (applied %d times)",
            keyword,
            rule.category,
            rule.times_applied,
        )
        return RuleLearningResult(status=RuleLearningStatus.RECORDED, rule=rule)
