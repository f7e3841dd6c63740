"""
CLI main entry point.
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..schemas import Direction
from ..services import (
    BulkDefaults,
    ImportService,
    LedgerOverrides,
    RuleLearningStatus,
    StagingError,
    StagingService,
)
from ..state_store import StateStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from e


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _add_override_args(parser: argparse.ArgumentParser, full: bool = True) -> None:
    parser.add_argument("--category", type=str, help="Category to record")
    parser.add_argument("--merchant", type=str, help="Merchant name to record")
    if not full:
        return
    parser.add_argument("--amount", type=_decimal_arg, help="Corrected amount (positive)")
    parser.add_argument("--currency", type=str, help="Corrected currency code")
    parser.add_argument("--date", type=_date_arg, help="Corrected date (YYYY-MM-DD)")
    parser.add_argument(
        "--direction", choices=[d.value for d in Direction], help="Corrected direction"
    )
    parser.add_argument("--account", type=str, help="Account to book the transaction on")


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledger-recon",
        description="Stage bank statement imports, detect duplicates and reconcile them into the ledger",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-config", help="Write a default config file")

    # import command
    import_parser = subparsers.add_parser("import", help="Stage a CSV bank statement")
    import_parser.add_argument("file", type=Path, help="CSV statement to import")
    import_parser.add_argument("--user", required=True, help="Ledger owner")
    import_parser.add_argument("--label", type=str, help="Batch label (default: file name)")
    import_parser.add_argument(
        "--date-order",
        choices=["DMY", "MDY", "YMD"],
        help="Day/month order for ambiguous dates (default: from config)",
    )

    # pending command
    pending_parser = subparsers.add_parser("pending", help="List records awaiting review")
    pending_parser.add_argument("--user", required=True, help="Ledger owner")

    # approve command
    approve_parser = subparsers.add_parser("approve", help="Approve a staged record")
    approve_parser.add_argument("id", type=int, help="Staging record ID")
    _add_override_args(approve_parser)

    # merge command
    merge_parser = subparsers.add_parser(
        "merge", help="Merge a staged record into an existing ledger transaction"
    )
    merge_parser.add_argument("id", type=int, help="Staging record ID")
    merge_parser.add_argument("target", type=int, help="Ledger transaction ID")
    _add_override_args(merge_parser, full=False)

    # reject command
    reject_parser = subparsers.add_parser("reject", help="Reject a staged record")
    reject_parser.add_argument("id", type=int, help="Staging record ID")

    # bulk-approve command
    bulk_parser = subparsers.add_parser(
        "bulk-approve", help="Approve all pending records without a possible duplicate"
    )
    bulk_parser.add_argument("--user", required=True, help="Ledger owner")
    bulk_parser.add_argument(
        "--ids", type=int, nargs="+", help="Staging record IDs (default: all pending)"
    )
    bulk_parser.add_argument("--account", type=str, help="Account for every approved record")
    bulk_parser.add_argument("--category", type=str, help="Category for rows without one")

    # status command
    status_parser = subparsers.add_parser("status", help="Show ledger and staging statistics")
    status_parser.add_argument("--user", type=str, help="Restrict to one ledger owner")

    return parser


def cmd_init_config(config_path: Path) -> int:
    """Write a default configuration file."""
    if config_path.exists():
        print(f"❌ Config file already exists: {config_path}")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_import(
    config: Config,
    file: Path,
    user_id: str,
    label: str | None = None,
    date_order: str | None = None,
) -> int:
    """Stage every row of a CSV statement."""
    if not file.exists():
        print(f"❌ File not found: {file}")
        return 1

    print(f"📥 Importing {file.name} for {user_id}...")
    store = StateStore(config.state_db_path)
    service = ImportService(store, config)
    result = service.import_statement(file, user_id, batch_label=label, date_order=date_order)

    for error in result.errors:
        print(f"  ⚠️  {error}")

    if not result.success or (result.total_rows and not result.staged and result.errors):
        print("\n❌ Import failed")
        return 1

    print(
        f"\n✓ Staged {result.staged}/{result.total_rows} rows "
        f"({result.duplicates} possible duplicates)"
    )
    return 0


def cmd_pending(config: Config, user_id: str) -> int:
    """List pending records with their possible duplicate."""
    store = StateStore(config.state_db_path)
    service = StagingService(store, config)
    reviews = service.pending_reviews(user_id)

    if not reviews:
        print("✓ Nothing to review")
        return 0

    print(f"\n📋 {len(reviews)} record(s) awaiting review")
    print("=" * 60)
    for review in reviews:
        record = review.record
        print(f"  [{record.id}] {record.raw_text}")
        if review.match:
            tx = review.match.transaction
            print(
                f"       ↳ possible duplicate of #{tx.id} "
                f"({tx.transaction_date} | {tx.merchant or tx.category} | {tx.amount} {tx.currency}) "
                f"score {review.match.score}: {', '.join(review.match.reasons)}"
            )
        else:
            suggestion = service.suggest_category(user_id, record.candidate.description)
            if suggestion:
                print(f"       ↳ suggested category: {suggestion}")
    print()
    return 0


def cmd_approve(config: Config, staging_id: int, overrides: LedgerOverrides) -> int:
    """Approve one staged record."""
    service = StagingService(StateStore(config.state_db_path), config)
    try:
        result = service.approve(staging_id, overrides)
    except (StagingError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    tx = result.transaction
    print(f"✓ Approved [{staging_id}] as ledger transaction #{tx.id} ({tx.category})")
    if result.rule_learning.status == RuleLearningStatus.RECORDED:
        print(f"  Learned: {result.rule_learning.rule.merchant_keyword} → {tx.category}")
    elif result.rule_learning.status == RuleLearningStatus.FAILED:
        print(f"  ⚠️  Category rule not saved: {result.rule_learning.error}")
    return 0


def cmd_merge(config: Config, staging_id: int, target_id: int, overrides: LedgerOverrides) -> int:
    """Merge one staged record into a ledger transaction."""
    service = StagingService(StateStore(config.state_db_path), config)
    try:
        result = service.merge(staging_id, target_id, overrides)
    except (StagingError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    print(f"✓ Merged [{staging_id}] into ledger transaction #{result.transaction.id}")
    if result.rule_learning.status == RuleLearningStatus.FAILED:
        print(f"  ⚠️  Category rule not saved: {result.rule_learning.error}")
    return 0


def cmd_reject(config: Config, staging_id: int) -> int:
    """Reject one staged record."""
    service = StagingService(StateStore(config.state_db_path), config)
    try:
        service.reject(staging_id)
    except StagingError as e:
        print(f"❌ {e}")
        return 1

    print(f"✓ Rejected [{staging_id}]")
    return 0


def cmd_bulk_approve(
    config: Config,
    user_id: str,
    staging_ids: list[int] | None,
    defaults: BulkDefaults,
) -> int:
    """Approve every pending record without a possible duplicate."""
    service = StagingService(StateStore(config.state_db_path), config)
    if not staging_ids:
        staging_ids = [record.id for record in service.list_pending(user_id)]

    result = service.bulk_approve_non_duplicates(staging_ids, defaults, user_id=user_id)

    for error in result.errors:
        print(f"  ⚠️  {error}")
    print(f"✓ Approved {result.approved_count}, skipped {len(result.skipped_ids)}")
    return 0 if result.success else 1


def cmd_status(config: Config, user_id: str | None = None) -> int:
    """Show ledger and staging statistics."""
    store = StateStore(config.state_db_path)
    stats = store.get_stats(user_id)

    print("\n📊 Ledger Status" + (f" ({user_id})" if user_id else ""))
    print("=" * 40)
    print(f"  Ledger transactions:    {stats['ledger_transactions']}")
    print(f"  Pending review:         {stats['staging_pending']}")
    print(f"  Approved:               {stats['staging_approved']}")
    print(f"  Rejected:               {stats['staging_rejected']}")
    print(f"  Learned category rules: {stats['category_rules']}")
    print()

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except (ConfigValidationError, OSError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    # Route to command
    if parsed.command == "import":
        return cmd_import(config, parsed.file, parsed.user, parsed.label, parsed.date_order)
    elif parsed.command == "pending":
        return cmd_pending(config, parsed.user)
    elif parsed.command == "approve":
        overrides = LedgerOverrides(
            amount=parsed.amount,
            currency=parsed.currency,
            direction=Direction(parsed.direction) if parsed.direction else None,
            category=parsed.category,
            merchant=parsed.merchant,
            transaction_date=parsed.date,
            account_id=parsed.account,
        )
        return cmd_approve(config, parsed.id, overrides)
    elif parsed.command == "merge":
        overrides = LedgerOverrides(category=parsed.category, merchant=parsed.merchant)
        return cmd_merge(config, parsed.id, parsed.target, overrides)
    elif parsed.command == "reject":
        return cmd_reject(config, parsed.id)
    elif parsed.command == "bulk-approve":
        defaults = BulkDefaults(account_id=parsed.account, category=parsed.category)
        return cmd_bulk_approve(config, parsed.user, parsed.ids, defaults)
    elif parsed.command == "status":
        return cmd_status(config, parsed.user)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
