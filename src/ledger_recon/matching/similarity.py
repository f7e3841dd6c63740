"""String similarity for normalized merchant text.

Blends three signals into a bounded score in [0, 1]:
- Token-set overlap (Jaccard on words longer than one character)
- Levenshtein edit-distance ratio
- Common-prefix bonus for long shared prefixes
"""

WEIGHT_TOKENS = 0.4
WEIGHT_EDIT_DISTANCE = 0.4
WEIGHT_PREFIX = 0.2

# Shared prefixes this short or shorter earn no bonus
MIN_PREFIX_LENGTH = 3


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete and substitute all cost 1)."""
    m, n = len(a), len(b)
    if m == 0:
        return n
    if n == 0:
        return m
    if a == b:
        return 0

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dp[i][j] = min(
                dp[i - 1][j] + 1,  # deletion
                dp[i][j - 1] + 1,  # insertion
                dp[i - 1][j - 1] + cost,  # substitution
            )

    return dp[m][n]


def token_overlap(a: str, b: str) -> float:
    """Jaccard similarity of the word sets (words of length <= 1 ignored)."""
    words_a = {w for w in a.split() if len(w) > 1}
    words_b = {w for w in b.split() if len(w) > 1}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def edit_distance_ratio(a: str, b: str) -> float:
    """1 - distance / longer length; 0.0 when both strings are empty."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return 1 - levenshtein_distance(a, b) / longest


def prefix_bonus(a: str, b: str) -> float:
    """Half the shared-prefix ratio, if more than MIN_PREFIX_LENGTH chars match."""
    shorter = min(len(a), len(b))
    common = 0
    while common < shorter and a[common] == b[common]:
        common += 1
    if common <= MIN_PREFIX_LENGTH:
        return 0.0
    return common / shorter * 0.5


def similarity(a: str, b: str) -> float:
    """
    Similarity of two normalized strings.

    Symmetric, 1.0 for identical non-empty strings, 0.0 if either is empty.

    Args:
        a: Normalized text (see normalize_merchant_name)
        b: Normalized text

    Returns:
        Score in [0.0, 1.0]
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    score = (
        token_overlap(a, b) * WEIGHT_TOKENS
        + edit_distance_ratio(a, b) * WEIGHT_EDIT_DISTANCE
        + prefix_bonus(a, b) * WEIGHT_PREFIX
    )
    return min(1.0, score)
