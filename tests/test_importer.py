"""Tests for statement import orchestration."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from conftest import make_candidate

from ledger_recon.config import Config, IngestConfig
from ledger_recon.schemas import Direction, ImportCandidate, StagingStatus
from ledger_recon.services import ImportService
from ledger_recon.state_store import LedgerStoreError


@pytest.fixture
def importer(store, config):
    return ImportService(store, config)


class TestImportStatement:
    """Tests for ImportService.import_statement."""

    def test_bad_row_does_not_abort_batch(self, importer, store, sample_statement_csv):
        """Ten rows with an unparseable amount on row 5 stage nine records."""
        result = importer.import_statement(sample_statement_csv, "user-1")

        assert result.success is True
        assert result.total_rows == 10
        assert result.staged == 9
        assert len(result.staging_ids) == 9
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Row 5:")

        pending = store.list_staging("user-1", StagingStatus.PENDING)
        assert len(pending) == 9

    def test_duplicate_flagged(self, importer, store, tiktok_ledger_tx, sample_statement_csv):
        result = importer.import_statement(sample_statement_csv, "user-1")

        assert result.duplicates == 1
        flagged = [r for r in store.list_staging("user-1") if r.has_match]
        assert len(flagged) == 1
        assert flagged[0].potential_match_id == tiktok_ledger_tx.id
        assert flagged[0].match_score == 100
        assert "Very similar merchant" in flagged[0].match_reasons

    def test_other_users_ledger_ignored(self, importer, store, tiktok_ledger_tx, sample_statement_csv):
        result = importer.import_statement(sample_statement_csv, "user-2")

        assert result.duplicates == 0

    def test_batch_label_defaults_to_file_name(self, importer, store, tmp_path, sample_statement_csv):
        path = tmp_path / "alrajhi-jan.csv"
        path.write_text(sample_statement_csv, encoding="utf-8")

        importer.import_statement(path, "user-1")

        labels = {r.batch_label for r in store.list_staging("user-1")}
        assert labels == {"alrajhi-jan.csv"}

    def test_missing_columns_stage_nothing(self, importer, store):
        csv_text = "Date,Notes\n2026-01-09,hello\n2026-01-10,world\n"

        result = importer.import_statement(csv_text, "user-1")

        assert result.success is False
        assert result.staged == 0
        assert result.errors == [
            "Could not find a description column",
            "Could not find an amount column",
        ]
        assert store.list_staging("user-1") == []

    def test_row_error_counts_blank_lines(self, importer):
        result = importer.import_statement(
            "Date,Description,Amount\n2026-01-09,Coffee,12\n\n2026-01-10,Lunch,N/A\n", "user-1"
        )

        assert result.staged == 1
        assert result.errors == ["Row 3: Invalid amount: 'N/A'"]

    def test_date_order_from_config(self, store, temp_db):
        config = Config(state_db_path=temp_db, ingest=IngestConfig(date_order="DMY"))
        importer = ImportService(store, config)

        importer.import_statement("Date,Description,Amount\n01/02/26,Coffee,12\n", "user-1")

        record = store.list_staging("user-1")[0]
        assert record.candidate.date == date(2026, 2, 1)

    def test_date_order_from_header(self, importer, store):
        importer.import_statement(
            "Date (DD/MM/YYYY),Description,Amount\n01/02/26,Coffee,12\n", "user-1"
        )

        assert store.list_staging("user-1")[0].candidate.date == date(2026, 2, 1)

    def test_income_keywords_from_config(self, store, temp_db):
        config = Config(state_db_path=temp_db, ingest=IngestConfig(income_keywords=("bonus",)))
        importer = ImportService(store, config)

        importer.import_statement(
            "Date,Description,Amount\n2026-01-09,Q4 BONUS,500\n2026-01-09,SALARY,100\n", "user-1"
        )

        directions = {r.candidate.description: r.candidate.direction for r in store.list_staging("user-1")}
        assert directions == {"Q4 BONUS": Direction.IN, "SALARY": Direction.OUT}

    def test_persistence_failure_becomes_row_error(self, importer, store, sample_statement_csv):
        original = store.create_staging

        def flaky_create(user_id, candidate, *args, **kwargs):
            if candidate.description == "Uber Trip 4432":
                raise LedgerStoreError("database is locked")
            return original(user_id, candidate, *args, **kwargs)

        with patch.object(store, "create_staging", side_effect=flaky_create):
            result = importer.import_statement(sample_statement_csv, "user-1")

        assert result.staged == 8
        assert len(result.errors) == 2
        assert any(e.startswith("Row 2:") for e in result.errors)


class TestStageCandidate:
    """Tests for single-candidate staging (parsed free text, direct entry)."""

    def test_from_extraction(self, importer, tiktok_ledger_tx):
        candidate = ImportCandidate.from_extraction(
            {"amount": -244.2, "merchant": "TikTok Ads", "date": "2026-01-09"},
            home_currency="SAR",
        )

        record = importer.stage_candidate("user-1", candidate, raw_text="paid tiktok ads 244.20")

        assert record.raw_text == "paid tiktok ads 244.20"
        assert record.candidate.amount == Decimal("244.2")
        assert record.potential_match_id == tiktok_ledger_tx.id

    def test_no_match_outside_window(self, importer, tiktok_ledger_tx):
        candidate = make_candidate(candidate_date=date(2026, 3, 1))

        record = importer.stage_candidate("user-1", candidate)

        assert record.has_match is False
        assert record.raw_text == candidate.raw_text
