"""
Configuration management (SSOT).

This module defines ALL configuration for the reconciliation engine.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- Matching tolerances are passed explicitly as a MatchConfig value
- The ledger store never reads configuration; services receive it
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

DATE_ORDERS = ("DMY", "MDY", "YMD")

DEFAULT_INCOME_KEYWORDS = (
    "salary",
    "deposit",
    "transfer in",
    "credit",
    "received",
    "refund",
    "cashback",
)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass(frozen=True)
class MatchConfig:
    """Duplicate detection tolerances.

    The ledger window handed to the matcher is expected to be pre-filtered
    to +/- date_tolerance_days and +/- amount_tolerance around the candidate.
    """

    # Days +/- for the ledger window query
    date_tolerance_days: int = 2
    # Amount +/- for the ledger window query (currency units)
    amount_tolerance: Decimal = Decimal("1.0")
    # Minimum score (0-100) for a ledger row to count as a potential match
    min_match_score: int = 60


@dataclass
class IngestConfig:
    """Bulk import settings."""

    # Currency used when a statement has no currency column
    home_currency: str = "SAR"
    # Category used when neither reviewer nor statement supplies one
    default_category: str = "Other"
    # Day/month order hint for ambiguous dates (None = parser default)
    date_order: str | None = None
    # Description keywords that mark a row as incoming money
    income_keywords: tuple[str, ...] = DEFAULT_INCOME_KEYWORDS


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    matching: MatchConfig = field(default_factory=MatchConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/ledger.db"))

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.matching.date_tolerance_days < 0:
            errors.append("matching.date_tolerance_days must be >= 0")
        if self.matching.amount_tolerance < 0:
            errors.append("matching.amount_tolerance must be >= 0")
        if not 0 <= self.matching.min_match_score <= 100:
            errors.append("matching.min_match_score must be between 0 and 100")

        currency = self.ingest.home_currency or ""
        if len(currency) != 3 or not currency.isalpha():
            errors.append("ingest.home_currency must be a 3-letter currency code")
        if self.ingest.date_order is not None and self.ingest.date_order not in DATE_ORDERS:
            errors.append(f"ingest.date_order must be one of {', '.join(DATE_ORDERS)}")
        if not self.ingest.default_category:
            errors.append("ingest.default_category is required")

        return errors


def _env_int(name: str, fallback: int) -> int:
    """Read an integer environment override, keeping the fallback on bad input."""
    raw = os.environ.get(name, "")
    if not raw:
        return fallback
    try:
        return int(raw)
    except ValueError:
        return fallback  # Keep default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - LEDGER_RECON_DB_PATH
    - LEDGER_RECON_HOME_CURRENCY
    - LEDGER_RECON_DATE_ORDER (DMY/MDY/YMD)
    - LEDGER_RECON_DATE_TOLERANCE_DAYS
    - LEDGER_RECON_MIN_MATCH_SCORE

    Raises:
        ConfigValidationError: If a value cannot be converted to its type.
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Matching config
    match_data = data.get("matching", {})
    try:
        amount_tolerance = Decimal(str(match_data.get("amount_tolerance", "1.0")))
    except InvalidOperation as e:
        raise ConfigValidationError(
            f"matching.amount_tolerance is not a number: {match_data.get('amount_tolerance')!r}"
        ) from e

    matching = MatchConfig(
        date_tolerance_days=_env_int(
            "LEDGER_RECON_DATE_TOLERANCE_DAYS", match_data.get("date_tolerance_days", 2)
        ),
        amount_tolerance=amount_tolerance,
        min_match_score=_env_int(
            "LEDGER_RECON_MIN_MATCH_SCORE", match_data.get("min_match_score", 60)
        ),
    )

    # Ingest config
    ingest_data = data.get("ingest", {})
    date_order = os.environ.get("LEDGER_RECON_DATE_ORDER", ingest_data.get("date_order"))
    keywords = ingest_data.get("income_keywords")

    ingest = IngestConfig(
        home_currency=os.environ.get(
            "LEDGER_RECON_HOME_CURRENCY", ingest_data.get("home_currency", "SAR")
        ).upper(),
        default_category=ingest_data.get("default_category", "Other"),
        date_order=date_order.upper() if date_order else None,
        income_keywords=tuple(keywords) if keywords else DEFAULT_INCOME_KEYWORDS,
    )

    # State DB
    state_db = os.environ.get("LEDGER_RECON_DB_PATH", data.get("state_db_path", "data/ledger.db"))

    return Config(
        matching=matching,
        ingest=ingest,
        state_db_path=Path(state_db),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Ledger reconciliation engine configuration

# Duplicate detection (bank-statement tolerances)
matching:
  date_tolerance_days: 2                   # Ledger window: +/- days around the row date
  amount_tolerance: 1.0                    # Ledger window: +/- amount around the row amount
  min_match_score: 60                      # Score (0-100) to flag a row as a potential duplicate

# Bulk statement import
ingest:
  home_currency: "SAR"                     # Used when the file has no currency column
  default_category: "Other"                # Used when no category is known
  date_order: null                         # DMY, MDY, YMD or null to auto-detect
  income_keywords:                         # Description keywords marking incoming money
    - salary
    - deposit
    - transfer in
    - credit
    - received
    - refund
    - cashback

# State database path
state_db_path: "data/ledger.db"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
