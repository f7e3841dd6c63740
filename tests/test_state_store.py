"""Tests for the SQLite ledger store."""

import sqlite3
from datetime import date
from decimal import Decimal

import pytest
from conftest import make_candidate

from ledger_recon.schemas import Direction, NewLedgerTransaction, StagingStatus
from ledger_recon.state_store import LedgerStoreError, StateStore
from ledger_recon.state_store.migrations import MigrationRunner, get_all_migrations


def _new_tx(amount="244.20", tx_date=date(2026, 1, 9), merchant="Tiktok Ads LLC"):
    return NewLedgerTransaction(
        amount=Decimal(amount),
        currency="SAR",
        direction=Direction.OUT,
        category="Marketing",
        merchant=merchant,
        transaction_date=tx_date,
    )


class TestStateStore:
    """Tests for schema setup."""

    def test_init_creates_db(self, temp_db):
        StateStore(temp_db)
        assert temp_db.exists()

    def test_init_creates_tables(self, store):
        conn = store._get_connection()
        try:
            tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            table_names = [t[0] for t in tables]

            assert "ledger_transactions" in table_names
            assert "staging_records" in table_names
            assert "category_rules" in table_names
            assert "migrations" in table_names
        finally:
            conn.close()

    def test_migrations_applied_once(self, temp_db):
        StateStore(temp_db)
        store = StateStore(temp_db)

        conn = store._get_connection()
        try:
            runner = MigrationRunner(conn)
            assert runner.get_applied_versions() == {m.version for m in get_all_migrations()}
            assert runner.run_pending() == []
        finally:
            conn.close()

    def test_storage_errors_raise_ledger_store_error(self, store):
        conn = store._get_connection()
        conn.execute("DROP TABLE staging_records")
        conn.commit()
        conn.close()

        with pytest.raises(LedgerStoreError) as exc_info:
            store.list_staging("user-1")

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)


class TestLedgerTransactions:
    """Tests for ledger CRUD and the window query."""

    def test_insert_and_get(self, store):
        tx = store.insert_transaction("user-1", _new_tx())

        loaded = store.get_transaction(tx.id)

        assert loaded == tx
        assert loaded.amount == Decimal("244.20")
        assert loaded.transaction_date == date(2026, 1, 9)
        assert loaded.direction == Direction.OUT

    def test_get_missing(self, store):
        assert store.get_transaction(999) is None

    def test_query_window_filters(self, store):
        inside = store.insert_transaction("user-1", _new_tx("244.20", date(2026, 1, 9)))
        edge = store.insert_transaction("user-1", _new_tx("245.20", date(2026, 1, 11)))
        store.insert_transaction("user-1", _new_tx("300.00", date(2026, 1, 9)))  # amount out
        store.insert_transaction("user-1", _new_tx("244.20", date(2026, 1, 12)))  # date out
        store.insert_transaction("user-2", _new_tx("244.20", date(2026, 1, 9)))  # other user

        window = store.query_window(
            "user-1", date(2026, 1, 7), date(2026, 1, 11), Decimal("243.20"), Decimal("245.20")
        )

        assert [tx.id for tx in window] == [inside.id, edge.id]

    def test_update_transaction(self, store):
        tx = store.insert_transaction("user-1", _new_tx())

        updated = store.update_transaction(
            tx.id, {"category": "Ads", "amount": Decimal("250.00"), "transaction_date": date(2026, 1, 10)}
        )

        assert updated.category == "Ads"
        assert updated.amount == Decimal("250.00")
        assert updated.transaction_date == date(2026, 1, 10)
        assert updated.created_at == tx.created_at

    def test_update_rejects_immutable_fields(self, store):
        tx = store.insert_transaction("user-1", _new_tx())

        with pytest.raises(ValueError, match="user_id"):
            store.update_transaction(tx.id, {"user_id": "someone-else"})

    def test_update_missing(self, store):
        assert store.update_transaction(999, {"category": "Ads"}) is None

    def test_delete_transaction(self, store):
        tx = store.insert_transaction("user-1", _new_tx())

        assert store.delete_transaction(tx.id) is True
        assert store.delete_transaction(tx.id) is False
        assert store.get_transaction(tx.id) is None


class TestStagingRecords:
    """Tests for staging persistence."""

    def test_create_and_get(self, store):
        candidate = make_candidate()

        record = store.create_staging(
            "user-1", candidate, candidate.raw_text, batch_label="january.csv"
        )
        loaded = store.get_staging(record.id)

        assert loaded.status == StagingStatus.PENDING
        assert loaded.candidate == candidate
        assert loaded.raw_text == "2026-01-09 | TIKTOK ADS | 244.20 SAR"
        assert loaded.batch_label == "january.csv"
        assert loaded.has_match is False

    def test_match_details_round_trip(self, store, tiktok_ledger_tx):
        candidate = make_candidate()

        record = store.create_staging(
            "user-1",
            candidate,
            candidate.raw_text,
            potential_match_id=tiktok_ledger_tx.id,
            match_score=100,
            match_reasons=["Same date", "Exact amount", "Very similar merchant"],
        )

        assert record.potential_match_id == tiktok_ledger_tx.id
        assert record.match_score == 100
        assert record.match_reasons == ["Same date", "Exact amount", "Very similar merchant"]

    def test_deleting_matched_ledger_row_clears_link(self, store, tiktok_ledger_tx):
        candidate = make_candidate()
        record = store.create_staging(
            "user-1", candidate, candidate.raw_text, potential_match_id=tiktok_ledger_tx.id
        )

        store.delete_transaction(tiktok_ledger_tx.id)

        assert store.get_staging(record.id).potential_match_id is None

    def test_transition_is_conditional(self, store):
        candidate = make_candidate()
        record = store.create_staging("user-1", candidate, candidate.raw_text)

        assert store.transition_staging(record.id, StagingStatus.PENDING, StagingStatus.REJECTED)
        assert not store.transition_staging(
            record.id, StagingStatus.PENDING, StagingStatus.APPROVED
        )
        assert store.get_staging(record.id).status == StagingStatus.REJECTED

    def test_list_staging_by_status(self, store):
        candidate = make_candidate()
        first = store.create_staging("user-1", candidate, candidate.raw_text)
        second = store.create_staging("user-1", candidate, candidate.raw_text)
        store.create_staging("user-2", candidate, candidate.raw_text)
        store.transition_staging(first.id, StagingStatus.PENDING, StagingStatus.APPROVED)

        pending = store.list_staging("user-1", StagingStatus.PENDING)
        everything = store.list_staging("user-1")

        assert [r.id for r in pending] == [second.id]
        assert [r.id for r in everything] == [second.id, first.id]

    def test_delete_staging(self, store):
        candidate = make_candidate()
        record = store.create_staging("user-1", candidate, candidate.raw_text)

        assert store.delete_staging(record.id) is True
        assert store.get_staging(record.id) is None


class TestCategoryRules:
    """Tests for learned category rules."""

    def test_upsert_increments_times_applied(self, store):
        first = store.upsert_category_rule("user-1", "tiktok ads", "Marketing")
        second = store.upsert_category_rule("user-1", "tiktok ads", "Advertising")

        assert first.times_applied == 1
        assert second.id == first.id
        assert second.times_applied == 2
        assert second.category == "Advertising"

    def test_find_rule_by_containment(self, store):
        store.upsert_category_rule("user-1", "tiktok ads", "Marketing")

        rule = store.find_category_rule("user-1", "tiktok ads campaign")

        assert rule is not None
        assert rule.category == "Marketing"
        assert store.find_category_rule("user-2", "tiktok ads campaign") is None
        assert store.find_category_rule("user-1", "careem") is None

    def test_most_applied_rule_wins(self, store):
        store.upsert_category_rule("user-1", "noon", "Shopping")
        store.upsert_category_rule("user-1", "noon food", "Food")
        store.upsert_category_rule("user-1", "noon food", "Food")

        assert store.find_category_rule("user-1", "noon food order").category == "Food"
        assert [r.merchant_keyword for r in store.get_category_rules("user-1")] == [
            "noon food",
            "noon",
        ]


class TestStats:
    def test_get_stats(self, store, tiktok_ledger_tx):
        candidate = make_candidate()
        record = store.create_staging("user-1", candidate, candidate.raw_text)
        store.create_staging("user-1", candidate, candidate.raw_text)
        store.transition_staging(record.id, StagingStatus.PENDING, StagingStatus.REJECTED)

        stats = store.get_stats()

        assert stats["ledger_transactions"] == 1
        assert stats["staging_pending"] == 1
        assert stats["staging_rejected"] == 1
        assert stats["staging_approved"] == 0
        assert store.get_stats("user-2")["ledger_transactions"] == 0
