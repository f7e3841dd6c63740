"""Duplicate detection: text normalization, similarity and candidate matching."""

from ledger_recon.matching.engine import (
    MatchResult,
    MatchSignal,
    best_match,
    find_matches,
    score_candidate,
    window_bounds,
)
from ledger_recon.matching.normalizer import normalize_merchant_name
from ledger_recon.matching.similarity import levenshtein_distance, similarity

__all__ = [
    "MatchResult",
    "MatchSignal",
    "best_match",
    "find_matches",
    "levenshtein_distance",
    "normalize_merchant_name",
    "score_candidate",
    "similarity",
    "window_bounds",
]
