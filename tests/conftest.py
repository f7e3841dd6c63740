"""Test fixtures and utilities."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_recon.config import Config
from ledger_recon.schemas import Direction, ImportCandidate, LedgerTransaction, NewLedgerTransaction
from ledger_recon.state_store import StateStore

# Ten statement rows; row 5 has an unparseable amount
SAMPLE_STATEMENT_CSV = """\
Date,Description,Amount,Currency
2026-01-05,CARREFOUR HYPERMARKET,312.75,SAR
2026-01-06,Uber Trip 4432,28.00,SAR
2026-01-06,SALARY JANUARY,15000.00,SAR
2026-01-07,STARBUCKS RIYADH,19.50,SAR
2026-01-08,NETFLIX.COM,N/A,SAR
2026-01-09,TIKTOK ADS,244.20,SAR
2026-01-10,JARIR BOOKSTORE,89.00,SAR
2026-01-11,ATM WITHDRAWAL,500.00,SAR
2026-01-12,NOON.COM,142.30,SAR
2026-01-13,REFUND AMAZON,60.00,SAR
"""


def make_ledger_tx(
    tx_id: int = 1,
    transaction_date: date = date(2026, 1, 9),
    amount: str = "244.20",
    merchant: str | None = "Tiktok Ads LLC",
    category: str = "Marketing",
    user_id: str = "user-1",
) -> LedgerTransaction:
    """Build an in-memory ledger transaction."""
    return LedgerTransaction(
        id=tx_id,
        user_id=user_id,
        amount=Decimal(amount),
        currency="SAR",
        direction=Direction.OUT,
        category=category,
        merchant=merchant,
        transaction_date=transaction_date,
        created_at="2026-01-09T10:00:00Z",
    )


def make_candidate(
    description: str = "TIKTOK ADS",
    amount: str = "244.20",
    candidate_date: date = date(2026, 1, 9),
    category: str | None = None,
    direction: Direction = Direction.OUT,
) -> ImportCandidate:
    return ImportCandidate(
        date=candidate_date,
        description=description,
        amount=Decimal(amount),
        currency="SAR",
        direction=direction,
        category=category,
    )


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_ledger.db"


@pytest.fixture
def store(temp_db) -> StateStore:
    """Fresh SQLite store."""
    return StateStore(temp_db)


@pytest.fixture
def config(temp_db) -> Config:
    """Default configuration pointing at the temporary database."""
    return Config(state_db_path=temp_db)


@pytest.fixture
def sample_statement_csv() -> str:
    """Ten-row statement with one bad amount on row 5."""
    return SAMPLE_STATEMENT_CSV


@pytest.fixture
def tiktok_ledger_tx(store) -> LedgerTransaction:
    """Existing ledger entry that a TIKTOK ADS statement row duplicates."""
    return store.insert_transaction(
        "user-1",
        NewLedgerTransaction(
            amount=Decimal("244.20"),
            currency="SAR",
            direction=Direction.OUT,
            category="Marketing",
            merchant="Tiktok Ads LLC",
            transaction_date=date(2026, 1, 9),
        ),
    )
