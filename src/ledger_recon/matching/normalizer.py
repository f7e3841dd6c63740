"""Merchant/description text normalization.

Bank statements, SMS alerts and manual entries describe the same merchant in
different ways ("POS PURCHASE TIKTOK ADS 0192", "Tiktok Ads LLC"). This
module canonicalizes such text into a comparable token form.
"""

import re

# Leading boilerplate added by banks and card networks.
# Applied in order; several may be stripped from one string.
BANK_PREFIXES = (
    "pos",
    "pos purchase",
    "point of sale",
    "card purchase",
    "debit card",
    "visa",
    "mastercard",
    "amex",
    "mada",
    "payment to",
    "payment",
    "purchase",
    "buy",
    "transfer to",
    "transfer",
    "wire",
    "ach",
    "atm",
    "withdrawal",
    "cash",
    "online",
)

# Trailing business-entity words
BUSINESS_SUFFIXES = (
    "llc",
    "inc",
    "corp",
    "corporation",
    "ltd",
    "limited",
    "co",
    "company",
    "fz",
    "fze",
    "fzc",
    "fzco",
    "dmcc",
    "plc",
    "gmbh",
    "ag",
    "sa",
    "sarl",
    "bv",
    "nv",
    "llp",
    "lp",
    "pllc",
    "pc",
    "pa",
    "dba",
    "trading",
    "enterprises",
    "solutions",
    "international",
    "intl",
    "global",
    "group",
    "services",
    "service",
    "store",
    "shop",
    "الشركة",
    "شركة",
    "مؤسسة",
    "للتجارة",
)

_SUFFIX_PATTERNS = tuple(
    re.compile(rf"\s+{re.escape(suffix)}[.,]?\s*$", re.IGNORECASE) for suffix in BUSINESS_SUFFIXES
)

# Word characters, whitespace and the Arabic block survive
_DISALLOWED_CHARS = re.compile(r"[^\w\s\u0600-\u06FF]")
_WHITESPACE_RUN = re.compile(r"\s+")
_TRAILING_NUMBER = re.compile(r"\s+\d+$")


def _normalize_once(text: str) -> str:
    normalized = text.lower().strip()

    for prefix in BANK_PREFIXES:
        if normalized.startswith(prefix + " "):
            normalized = normalized[len(prefix) + 1 :].strip()

    for pattern in _SUFFIX_PATTERNS:
        normalized = pattern.sub("", normalized)

    normalized = _DISALLOWED_CHARS.sub(" ", normalized)
    normalized = _WHITESPACE_RUN.sub(" ", normalized).strip()
    return _TRAILING_NUMBER.sub("", normalized)


def normalize_merchant_name(name: str | None) -> str:
    """
    Normalize a merchant name or description for comparison.

    Strips bank prefixes, business suffixes, punctuation and trailing
    reference numbers. Stripping one layer can expose another
    ("acme store 123" -> "acme store" -> "acme"), so the pass is repeated
    until the text stops changing. The result is therefore idempotent.

    Args:
        name: Raw merchant/description text (None is treated as empty)

    Returns:
        Lower-case, single-spaced comparable text ("" for empty input)

    Examples:
        >>> normalize_merchant_name("Tiktok Ads LLC")
        'tiktok ads'
        >>> normalize_merchant_name("POS PURCHASE CARREFOUR 00231")
        'carrefour'
    """
    if not name:
        return ""

    current = name
    while True:
        normalized = _normalize_once(current)
        if normalized == current:
            return normalized
        current = normalized
