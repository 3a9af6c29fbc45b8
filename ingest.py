"""Command-line log ingester.

Usage:
    python ingest.py LOGFILE [LOGFILE ...]    # Parse and store each log
    python ingest.py --dry-run LOGFILE ...    # Parse and report, store nothing
    python ingest.py --quarters               # Print the quarterly rollup as JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from analytics.display import format_currency
from analytics.quarters import group_weeks_by_quarter, quarters_to_dicts
from analytics.weekly import group_logs_by_week
from db import StoreError, get_all_days, init_db, record_upload
from parsers import LogParseError, build_day_record, read_log_file

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("ingest")


def ingest_files(paths: list[str], dry_run: bool = False) -> int:
    """Parse (and unless dry_run, store) each file. Returns the failure count."""
    failures = 0
    for path in paths:
        try:
            record = build_day_record(read_log_file(path))
        except (OSError, LogParseError) as e:
            logger.error("%s: %s", path, e)
            failures += 1
            continue

        h = record.analysis.headline
        logger.info(
            "%s -> %s: %s over %d trades (%dW / %dL)",
            path, record.date, format_currency(h.total_pnl), h.total_trades, h.wins, h.losses,
        )
        if dry_run:
            continue
        try:
            record_upload(record)
        except StoreError:
            logger.exception("Failed to store %s", path)
            failures += 1
    return failures


def print_quarters():
    quarters = group_weeks_by_quarter(group_logs_by_week(get_all_days()))
    json.dump(quarters_to_dicts(quarters), sys.stdout, indent=2)
    sys.stdout.write("\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="TradeLog log ingester")
    parser.add_argument("files", nargs="*", help="Log files to ingest")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, store nothing")
    parser.add_argument("--quarters", action="store_true", help="Print the quarterly rollup as JSON")
    args = parser.parse_args(argv)

    if not args.files and not args.quarters:
        parser.print_help()
        return 2

    init_db()
    failures = ingest_files(args.files, dry_run=args.dry_run) if args.files else 0
    if args.quarters:
        print_quarters()
    if failures:
        logger.warning("%d of %d file(s) failed", failures, len(args.files))
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
