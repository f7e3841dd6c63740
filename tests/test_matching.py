"""Tests for the duplicate matching engine."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from conftest import make_candidate, make_ledger_tx

from ledger_recon.config import MatchConfig
from ledger_recon.matching import best_match, find_matches, score_candidate, window_bounds
from ledger_recon.matching.engine import REASON_CONTAINED, REASON_VERY_SIMILAR


class TestScoring:
    """Tests for per-pair scoring."""

    def test_tiktok_scenario_scores_100(self):
        """Statement row and ledger entry for the same ad spend."""
        candidate = make_candidate("TIKTOK ADS", "244.20", date(2026, 1, 9))
        tx = make_ledger_tx(merchant="Tiktok Ads LLC", amount="244.20")

        matches = find_matches(candidate, [tx])

        assert len(matches) == 1
        top = matches[0]
        assert top.transaction_id == tx.id
        assert top.score == 100
        assert "Same date" in top.reasons
        assert "Exact amount" in top.reasons
        assert REASON_VERY_SIMILAR in top.reasons
        assert REASON_CONTAINED not in top.reasons

    def test_same_date_and_amount_floor(self):
        """Date and amount alone give at least 80, whatever the description."""
        candidate = make_candidate("Completely different text", "50.00")
        tx = make_ledger_tx(merchant="Zz", amount="50.00")

        result = score_candidate(candidate, tx)

        assert result.score >= 80

    def test_empty_description_does_not_count_as_contained(self):
        candidate = make_candidate("", "50.00")
        tx = make_ledger_tx(merchant="Jarir Bookstore", amount="50.00")

        result = score_candidate(candidate, tx)

        assert result.score == 80
        assert REASON_CONTAINED not in result.reasons

    def test_out_of_tolerance_degrades_without_raising(self):
        candidate = make_candidate("TIKTOK ADS", "10.00")
        tx = make_ledger_tx(
            transaction_date=date(2026, 1, 9) + timedelta(days=45),
            amount="900.00",
            merchant="Something Else",
        )

        result = score_candidate(candidate, tx)

        assert result.score < 60
        assert find_matches(candidate, [tx]) == []

    @pytest.mark.parametrize(
        "days,points,reason",
        [(0, 40, "Same date"), (1, 30, "±1 day"), (2, 20, "±2 days")],
    )
    def test_date_bands(self, days, points, reason):
        candidate = make_candidate()
        tx = make_ledger_tx(transaction_date=date(2026, 1, 9) - timedelta(days=days))

        result = score_candidate(candidate, tx)

        date_signal = next(s for s in result.signals if s.signal == "date")
        assert date_signal.points == points
        assert reason in result.reasons

    @pytest.mark.parametrize(
        "ledger_amount,points,reason",
        [
            ("244.20", 40, "Exact amount"),
            ("244.69", 35, "Amount within ±0.50"),
            ("244.70", 25, "Amount within ±1.00"),
            ("245.19", 25, "Amount within ±1.00"),
            ("245.20", 15, "Amount within ±1.00"),
        ],
    )
    def test_amount_bands_use_strict_bounds(self, ledger_amount, points, reason):
        candidate = make_candidate(amount="244.20")
        tx = make_ledger_tx(amount=ledger_amount)

        result = score_candidate(candidate, tx)

        amount_signal = next(s for s in result.signals if s.signal == "amount")
        assert amount_signal.points == points
        assert reason in result.reasons

    def test_containment_bonus(self):
        candidate = make_candidate("CARREFOUR", "312.75", date(2026, 1, 9))
        tx = make_ledger_tx(
            merchant="Carrefour Hypermarket Riyadh",
            amount="312.75",
            transaction_date=date(2026, 1, 7),
        )

        result = score_candidate(candidate, tx)

        assert "Partial merchant match" in result.reasons
        assert REASON_CONTAINED in result.reasons
        assert result.score == 20 + 40 + 10 + 15

    def test_ledger_without_merchant_uses_category(self):
        candidate = make_candidate("TIKTOK ADS")
        tx = make_ledger_tx(merchant=None, category="Tiktok Ads")

        result = score_candidate(candidate, tx)

        assert REASON_VERY_SIMILAR in result.reasons

    def test_score_never_exceeds_100(self):
        candidate = make_candidate("TIKTOK ADS")
        tx = make_ledger_tx(merchant="TIKTOK ADS")

        assert score_candidate(candidate, tx).score == 100


class TestFindMatches:
    """Tests for threshold filtering and ordering."""

    def test_sorted_by_score_descending(self):
        candidate = make_candidate("TIKTOK ADS")
        weaker = make_ledger_tx(tx_id=1, merchant="Unrelated", transaction_date=date(2026, 1, 10))
        stronger = make_ledger_tx(tx_id=2, merchant="Tiktok Ads LLC")

        matches = find_matches(candidate, [weaker, stronger])

        assert [m.transaction_id for m in matches] == [2, 1]

    def test_equal_scores_keep_window_order(self):
        candidate = make_candidate("TIKTOK ADS")
        first = make_ledger_tx(tx_id=7)
        second = make_ledger_tx(tx_id=3)

        matches = find_matches(candidate, [first, second])

        assert [m.transaction_id for m in matches] == [7, 3]

    def test_threshold_from_config(self):
        candidate = make_candidate("TIKTOK ADS")
        tx = make_ledger_tx(merchant="Unrelated")

        assert find_matches(candidate, [tx], MatchConfig(min_match_score=81)) == []
        assert len(find_matches(candidate, [tx], MatchConfig(min_match_score=80))) == 1

    def test_empty_window(self):
        assert find_matches(make_candidate(), []) == []
        assert best_match(make_candidate(), []) is None

    def test_best_match_returns_top(self):
        candidate = make_candidate("TIKTOK ADS")
        matches = [make_ledger_tx(tx_id=1, merchant="Other"), make_ledger_tx(tx_id=2)]

        assert best_match(candidate, matches).transaction_id == 2


class TestWindowBounds:
    def test_default_tolerances(self):
        candidate = make_candidate(amount="244.20", candidate_date=date(2026, 1, 9))

        start, end, low, high = window_bounds(candidate, MatchConfig())

        assert start == date(2026, 1, 7)
        assert end == date(2026, 1, 11)
        assert low == Decimal("243.20")
        assert high == Decimal("245.20")
