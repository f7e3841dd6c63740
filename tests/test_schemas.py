"""Tests for canonical schemas."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_recon.schemas import Direction, ImportCandidate, NewLedgerTransaction, StagingStatus


class TestImportCandidate:
    """Tests for ImportCandidate validation and conversion."""

    def test_coerces_fields(self):
        candidate = ImportCandidate(
            date="2026-01-09",
            description="  TIKTOK ADS ",
            amount="244.20",
            currency="sar",
            direction="in",
            category="",
        )

        assert candidate.date == date(2026, 1, 9)
        assert candidate.description == "TIKTOK ADS"
        assert candidate.amount == Decimal("244.20")
        assert candidate.currency == "SAR"
        assert candidate.direction == Direction.IN
        assert candidate.category is None

    @pytest.mark.parametrize("amount", ["0", "-5", "NaN", "Infinity", "abc"])
    def test_rejects_bad_amount(self, amount):
        with pytest.raises(ValueError):
            ImportCandidate(date=date(2026, 1, 9), description="x", amount=amount, currency="SAR")

    def test_rejects_bad_currency(self):
        with pytest.raises(ValueError, match="currency"):
            ImportCandidate(date=date(2026, 1, 9), description="x", amount="1", currency="RIYAL")

    def test_raw_text(self):
        candidate = ImportCandidate(
            date=date(2026, 1, 9), description="TIKTOK ADS", amount="244.20", currency="SAR"
        )

        assert candidate.raw_text == "2026-01-09 | TIKTOK ADS | 244.20 SAR"

    def test_from_extraction_defaults(self):
        candidate = ImportCandidate.from_extraction(
            {"amount": "-18.5", "description": "coffee"},
            home_currency="AED",
            default_date=date(2026, 2, 1),
        )

        assert candidate.amount == Decimal("18.5")
        assert candidate.currency == "AED"
        assert candidate.direction == Direction.OUT
        assert candidate.date == date(2026, 2, 1)

    def test_from_extraction_requires_amount(self):
        with pytest.raises(ValueError, match="amount"):
            ImportCandidate.from_extraction({"merchant": "Coffee"}, home_currency="SAR")


class TestNewLedgerTransaction:
    def test_requires_positive_amount(self):
        with pytest.raises(ValueError):
            NewLedgerTransaction(
                amount=Decimal("0"),
                currency="SAR",
                direction=Direction.OUT,
                category="Other",
                merchant=None,
                transaction_date=date(2026, 1, 9),
            )


class TestStagingStatus:
    def test_terminal_states(self):
        assert not StagingStatus.PENDING.is_terminal
        assert StagingStatus.APPROVED.is_terminal
        assert StagingStatus.REJECTED.is_terminal
