"""
Spreadsheet Sync Command Line

Loads tabular files into BigQuery or writes them to Firestore. Each input
file is one source; its stem is the source name.

Usage:
    sheetsync bigquery sales.json stock.csv --dataset reporting
    sheetsync bigquery sales.json --table-override sales=sales_2024 --all-string
    sheetsync firestore customers.json --batch-size 200
    sheetsync test-connection
"""

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sheetsync.core.config import InferenceMode, SyncConfig, settings
from sheetsync.core.errors import ConfigError, DataError, SheetSyncError, WriteError
from sheetsync.core.provider_config import ServiceAccountConfig, load_service_account
from sheetsync.services.data_sync import DataSyncService, SourceTable, summarize

logger = logging.getLogger(__name__)


def read_source(path: Path) -> SourceTable:
    """Read a JSON 2-D array (typed values) or a CSV file (text values)."""
    try:
        if path.suffix.lower() == ".json":
            values = json.loads(path.read_text(encoding="utf-8"))
        else:
            with path.open(newline="", encoding="utf-8") as f:
                values = [list(row) for row in csv.reader(f)]
    except json.JSONDecodeError as e:
        raise DataError(f"{path} is not valid JSON: {e}") from e
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise DataError(f"Cannot read {path}: {e}") from e

    if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
        raise DataError(f"{path} must contain a JSON array of rows")
    return SourceTable(name=path.stem, values=values)


def parse_overrides(pairs: list[str]) -> dict[str, str]:
    overrides = {}
    for pair in pairs:
        name, sep, table = pair.partition("=")
        if not sep or not name or not table:
            raise ConfigError(f"Expected SOURCE=TABLE, got '{pair}'")
        overrides[name] = table
    return overrides


def build_config(args: argparse.Namespace) -> SyncConfig:
    overrides: dict[str, Any] = {
        "project_id": args.project,
        "dataset_id": getattr(args, "dataset", None),
        "firestore_project_id": args.project,
        "excluded_sources": args.exclude or None,
    }
    if getattr(args, "table_override", None):
        overrides["table_overrides"] = parse_overrides(args.table_override)
    if getattr(args, "all_string", False):
        overrides["inference_mode"] = InferenceMode.ALL_STRING
    if getattr(args, "delimiter", None):
        overrides["field_delimiter"] = args.delimiter
    if getattr(args, "batch_size", None):
        overrides["batch_size"] = args.batch_size
    try:
        return SyncConfig.from_settings(settings, **overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid sync options: {e}") from e


def load_credentials(args: argparse.Namespace) -> ServiceAccountConfig | None:
    path = args.service_account or settings.SERVICE_ACCOUNT_FILE
    if not path:
        return None
    return load_service_account(path)


def run(args: argparse.Namespace) -> int:
    config = build_config(args)
    credentials = load_credentials(args)
    service = DataSyncService(config, credentials)

    if args.command == "test-connection":
        ok = service.test_connection()
        if ok:
            logger.info("✓ BigQuery connection successful")
        else:
            logger.error("✗ BigQuery connection failed")
        return 0 if ok else 1

    sources = [read_source(Path(path)) for path in args.files]
    if args.command == "bigquery":
        results = service.sync_to_bigquery(sources)
    else:
        try:
            results = service.sync_to_firestore(sources)
        except WriteError as e:
            for line in summarize(e.partial_results):
                logger.info(line)
            logger.error(
                f"Sync summary: {len(e.partial_results)} sources written before "
                f"'{e.source}' failed"
            )
            raise

    for line in summarize(results):
        logger.info(line)

    failed = [name for name, result in results.items() if not result.success]
    logger.info(f"Sync summary: {len(results) - len(failed)}/{len(results)} sources succeeded")
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync spreadsheet tables to BigQuery or Firestore",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--project", help="Google Cloud project id")
    parser.add_argument(
        "--service-account", help="Path to a service account JSON key file"
    )
    parser.add_argument(
        "--exclude", action="append", default=[], help="Source name to skip"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    bq = subparsers.add_parser("bigquery", help="Bulk-load files into BigQuery")
    bq.add_argument("files", nargs="+")
    bq.add_argument("--dataset", help="BigQuery dataset id")
    bq.add_argument(
        "--table-override",
        action="append",
        default=[],
        metavar="SOURCE=TABLE",
        help="Destination table for a source",
    )
    bq.add_argument(
        "--all-string", action="store_true", help="Load every column as STRING"
    )
    bq.add_argument("--delimiter", help="Field delimiter for the load payload")

    fs = subparsers.add_parser("firestore", help="Upsert file rows into Firestore")
    fs.add_argument("files", nargs="+")
    fs.add_argument("--batch-size", type=int, help="Writes per batch (max 500)")

    test = subparsers.add_parser("test-connection", help="Check BigQuery access")
    test.add_argument("--dataset", help="BigQuery dataset id")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        sys.exit(run(args))
    except SheetSyncError as e:
        logger.error(f"Sync failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
