"""Matching engine for detecting imported rows that duplicate ledger entries.

Scores a candidate against a pre-filtered ledger window on a 100-point scale:
- Date proximity (max 40)
- Amount proximity (max 40)
- Merchant/description similarity (max 30, or 15 for containment)

The window (+/- date and amount tolerance) is the caller's responsibility,
normally a ledger store query built from window_bounds().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from ledger_recon.config import MatchConfig
from ledger_recon.matching.normalizer import normalize_merchant_name
from ledger_recon.matching.similarity import similarity
from ledger_recon.schemas import ImportCandidate, LedgerTransaction

logger = logging.getLogger(__name__)

MAX_SCORE = 100

REASON_VERY_SIMILAR = "Very similar merchant"
REASON_CONTAINED = "Merchant name contained"


@dataclass
class MatchSignal:
    """Individual signal contribution to a match score."""

    signal: str
    points: int
    detail: str


@dataclass
class MatchResult:
    """Result of scoring an import candidate against one ledger transaction."""

    transaction: LedgerTransaction
    score: int  # 0-100
    reasons: list[str] = field(default_factory=list)
    signals: list[MatchSignal] = field(default_factory=list)

    @property
    def transaction_id(self) -> int:
        return self.transaction.id

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "transaction_id": self.transaction.id,
            "score": self.score,
            "reasons": self.reasons,
            "signals": [
                {"signal": s.signal, "points": s.points, "detail": s.detail}
                for s in self.signals
            ],
        }


def window_bounds(
    candidate: ImportCandidate,
    config: MatchConfig,
) -> tuple[date, date, Decimal, Decimal]:
    """
    Compute the ledger query window for a candidate.

    Returns:
        (start_date, end_date, min_amount, max_amount), all inclusive
    """
    tolerance = timedelta(days=config.date_tolerance_days)
    return (
        candidate.date - tolerance,
        candidate.date + tolerance,
        candidate.amount - config.amount_tolerance,
        candidate.amount + config.amount_tolerance,
    )


def _score_date(candidate_date: date, tx_date: date) -> tuple[MatchSignal, str]:
    days_diff = abs((candidate_date - tx_date).days)
    if days_diff == 0:
        return MatchSignal("date", 40, "same day"), "Same date"
    if days_diff == 1:
        return MatchSignal("date", 30, "1 day"), "±1 day"
    return MatchSignal("date", 20, f"{days_diff} days"), f"±{days_diff} days"


def _score_amount(candidate_amount: Decimal, tx_amount: Decimal) -> tuple[MatchSignal, str]:
    diff = abs(tx_amount - candidate_amount)
    if diff == 0:
        return MatchSignal("amount", 40, f"exact: {candidate_amount}"), "Exact amount"
    if diff < Decimal("0.5"):
        return MatchSignal("amount", 35, f"diff {diff:.2f}"), "Amount within ±0.50"
    if diff < Decimal("1.0"):
        return MatchSignal("amount", 25, f"diff {diff:.2f}"), "Amount within ±1.00"
    return MatchSignal("amount", 15, f"diff {diff:.2f}"), f"Amount within ±{diff:.2f}"


def _score_description(normalized_candidate: str, tx: LedgerTransaction) -> list[tuple[MatchSignal, str]]:
    # Ledger rows without a merchant fall back to their category
    normalized_tx = normalize_merchant_name(tx.merchant or tx.category or "")
    desc_similarity = similarity(normalized_candidate, normalized_tx)

    scored: list[tuple[MatchSignal, str]] = []
    if desc_similarity > 0.8:
        scored.append((MatchSignal("description", 30, f"{desc_similarity:.2f}"), REASON_VERY_SIMILAR))
    elif desc_similarity > 0.5:
        scored.append((MatchSignal("description", 20, f"{desc_similarity:.2f}"), "Similar merchant"))
    elif desc_similarity > 0.3:
        scored.append(
            (MatchSignal("description", 10, f"{desc_similarity:.2f}"), "Partial merchant match")
        )

    # Containment bonus never stacks with the "very similar" bonus.
    # Empty text is contained in everything, so both sides must have content.
    very_similar = desc_similarity > 0.8
    if (
        not very_similar
        and normalized_candidate
        and normalized_tx
        and (normalized_candidate in normalized_tx or normalized_tx in normalized_candidate)
    ):
        scored.append((MatchSignal("containment", 15, "contains"), REASON_CONTAINED))

    return scored


def score_candidate(candidate: ImportCandidate, tx: LedgerTransaction) -> MatchResult:
    """
    Score a single ledger transaction against a candidate.

    Standalone entry point, also useful for previews. Never raises for
    well-formed inputs; out-of-window pairs simply receive low points.
    """
    return _score(candidate, normalize_merchant_name(candidate.description), tx)


def _score(candidate: ImportCandidate, normalized_candidate: str, tx: LedgerTransaction) -> MatchResult:
    scored = [
        _score_date(candidate.date, tx.transaction_date),
        _score_amount(candidate.amount, tx.amount),
        *_score_description(normalized_candidate, tx),
    ]

    total = sum(signal.points for signal, _ in scored)
    return MatchResult(
        transaction=tx,
        score=min(total, MAX_SCORE),
        reasons=[reason for _, reason in scored],
        signals=[signal for signal, _ in scored],
    )


def find_matches(
    candidate: ImportCandidate,
    ledger_window: Iterable[LedgerTransaction],
    config: MatchConfig | None = None,
) -> list[MatchResult]:
    """
    Find ledger transactions that probably duplicate a candidate.

    Args:
        candidate: Incoming transaction.
        ledger_window: Ledger rows already filtered to the candidate's
            date/amount window (see window_bounds).
        config: Tolerances and threshold; defaults to MatchConfig().

    Returns:
        MatchResults with score >= config.min_match_score, sorted by score
        descending. Equal scores keep ledger_window order.
    """
    config = config or MatchConfig()
    normalized_candidate = normalize_merchant_name(candidate.description)

    results: list[MatchResult] = []
    for tx in ledger_window:
        result = _score(candidate, normalized_candidate, tx)
        logger.debug(
            "Scored candidate %s %s against tx %d: %d (%s)",
            candidate.date,
            candidate.amount,
            tx.id,
            result.score,
            ", ".join(result.reasons),
        )
        if result.score >= config.min_match_score:
            results.append(result)

    # list.sort is stable
    results.sort(key=lambda r: r.score, reverse=True)
    return results


def best_match(
    candidate: ImportCandidate,
    ledger_window: Iterable[LedgerTransaction],
    config: MatchConfig | None = None,
) -> MatchResult | None:
    """Return the highest-scoring match above threshold, or None."""
    matches = find_matches(candidate, ledger_window, config)
    return matches[0] if matches else None
