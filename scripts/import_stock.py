"""
Stock import script: reconcile a stock spreadsheet with the product catalog.

Usage:
    # Import the monthly count
    python scripts/import_stock.py "data/Stocks boissons août 2025.xlsx"

    # Preview against the live catalog, write nothing, keep the full log
    python scripts/import_stock.py stocks.csv --dry-run --json report.json
"""

import argparse
import os
import sys
from typing import Optional

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from config import configure_logging, settings
from config.database import ConnectionError as DatabaseConnectionError
from models.stock_import import ImportResult, ImportStatus
from services.catalog_provider import DryRunCatalogProvider
from services.import_report import format_report
from services.reconciliation_service import ReconciliationService
from services.supabase_catalog_provider import SupabaseCatalogProvider
from exceptions import AppError, PersistenceError


def write_json(result: ImportResult, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(result.model_dump_json(by_alias=True, indent=2))
    print(f"Full log written to {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import a stock spreadsheet: update counted products, create unknown ones."
    )
    parser.add_argument(
        "file",
        help="Spreadsheet to import (.xlsx, .xlsm, .xls or .csv)",
    )
    parser.add_argument(
        "--sheet",
        default=None,
        help="Sheet to read (default: a known stock sheet, else the first one)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read the catalog and report what would change, write nothing",
    )
    parser.add_argument(
        "--dedupe",
        action="store_true",
        help="Let later rows match products created earlier in the same run",
    )
    parser.add_argument(
        "--infer-categories",
        action="store_true",
        help="Guess the category from the product name when the sheet has none",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Operations per write batch (default: {settings.import_batch_size})",
    )
    parser.add_argument(
        "--json",
        dest="json_path",
        default=None,
        help="Also write the full result as JSON to this path",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if args.batch_size is not None and args.batch_size < 1:
        print("ERROR: --batch-size must be at least 1.")
        return 1

    separator = "=" * 60
    print(separator)
    print(f"  STOCK IMPORT -- {os.path.basename(args.file)}")
    if args.dry_run:
        print("  DRY RUN: nothing will be written")
    print(separator)
    print()

    try:
        provider = SupabaseCatalogProvider()
    except DatabaseConnectionError as e:
        print(f"ERROR: Cannot connect to the catalog: {e}")
        return 1

    if args.dry_run:
        provider = DryRunCatalogProvider(provider)

    service = ReconciliationService(
        provider,
        batch_size=args.batch_size,
        dedupe_within_run=True if args.dedupe else None,
        infer_missing_category=True if args.infer_categories else None,
    )

    try:
        result = service.run_source(args.file, sheet_name=args.sheet)
    except PersistenceError as e:
        print(f"ERROR: {e.message}")
        if e.result is None:
            return 1
        result = e.result
    except AppError as e:
        print(f"ERROR: {e.message}")
        return 1

    print(format_report(result))

    if args.json_path:
        write_json(result, args.json_path)

    return 0 if result.status == ImportStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
