"""Command-line interface for the scraper."""

import argparse
import logging
import sys
from typing import List, Optional

from partscrape.config import (
    CATALOG_URL,
    GROUPED_OUTPUT_PATH,
    MAX_CATALOG_PAGES,
    MAX_PAGES_PER_GROUP,
    MAX_PRODUCTS_PER_GROUP,
    MAX_TOTAL_PRODUCTS,
    OUTPUT_PATH,
    STATE_DB_PATH,
)
from partscrape.crawler import run_catalog, run_grouped
from partscrape.errors import BatchWriteError, ConfigurationError
from partscrape.fetcher import make_fetcher
from partscrape.logging_config import get_logger, setup_logging
from partscrape.rate import RateGovernor

__all__ = ["main", "parse_args"]

logger = get_logger("cli")


def _limit(value: str) -> Optional[int]:
    """argparse type for item limits; 'none' or a negative number = unlimited."""
    if value.strip().lower() in ("none", "inf", "unlimited"):
        return None
    number = int(value)
    return number if number >= 0 else None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="fastdeliverycarparts.com catalog scraper with WooCommerce CSV output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape the category catalog into one CSV
  python -m partscrape.cli catalog

  # Scrape per car (brand > model > year), at most 200 products in total
  python -m partscrape.cli grouped --budget 200

  # Only BMW and Audi, at most 20 products per model/year, start over
  python -m partscrape.cli grouped --brands BMW AD --per-leaf 20 --fresh
        """,
    )

    parser.add_argument(
        "mode",
        nargs="?",
        choices=["catalog", "grouped"],
        default="catalog",
        help="catalog: one category-filtered listing (default); "
             "grouped: one listing per brand/model/year",
    )
    parser.add_argument(
        "--output",
        help=f"Output CSV path (default: {OUTPUT_PATH} for catalog, "
             f"{GROUPED_OUTPUT_PATH} for grouped)",
    )
    parser.add_argument(
        "--start-url",
        default=CATALOG_URL,
        help="Start URL for catalog mode (default: configured category list)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        help=f"Maximum listing pages per walk (default: {MAX_CATALOG_PAGES} for catalog, "
             f"{MAX_PAGES_PER_GROUP} per car for grouped)",
    )
    parser.add_argument(
        "--budget",
        type=_limit,
        default=argparse.SUPPRESS,
        help=f"Maximum products in total (default: unlimited for catalog, "
             f"{MAX_TOTAL_PRODUCTS} for grouped)",
    )
    parser.add_argument(
        "--per-leaf",
        type=_limit,
        default=MAX_PRODUCTS_PER_GROUP,
        help=f"Maximum products per brand/model/year (default: {MAX_PRODUCTS_PER_GROUP})",
    )
    parser.add_argument(
        "--brands",
        nargs="+",
        metavar="CODE",
        help="Only crawl these brand codes in grouped mode (e.g. BMW AD VW)",
    )
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Ignore the saved cursor and start the grouped output from scratch",
    )
    parser.add_argument(
        "--state-db",
        default=STATE_DB_PATH,
        help=f"SQLite file holding the resume cursor (default: {STATE_DB_PATH})",
    )
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Disable the delays between requests",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write JSONL log files",
    )

    args = parser.parse_args(argv)
    if args.max_pages is not None and args.max_pages < 1:
        parser.error("--max-pages must be at least 1")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit status."""
    args = parse_args(argv)
    setup_logging(
        level=getattr(logging, args.log_level),
        log_to_file=not args.no_log_file,
    )

    fetch = make_fetcher()
    governor = RateGovernor.disabled() if args.no_delay else RateGovernor()

    try:
        if args.mode == "catalog":
            ctx = run_catalog(
                fetch,
                args.output or OUTPUT_PATH,
                start_url=args.start_url,
                budget=getattr(args, "budget", None),
                max_pages=args.max_pages or MAX_CATALOG_PAGES,
                governor=governor,
            )
        else:
            ctx = run_grouped(
                fetch,
                args.output or GROUPED_OUTPUT_PATH,
                budget=getattr(args, "budget", MAX_TOTAL_PRODUCTS),
                per_group_limit=args.per_leaf,
                max_pages=args.max_pages or MAX_PAGES_PER_GROUP,
                governor=governor,
                brands=args.brands,
                state_db=args.state_db,
                fresh=args.fresh,
            )
    except ConfigurationError as e:
        logger.error(f"Cannot proceed: {e}")
        return 1
    except BatchWriteError as e:
        logger.error(f"Stopping, output could not be written: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted; completed batches are kept and the next run resumes")
        return 130

    logger.info(f"Done: {ctx.rows_written} rows written")
    return 0


if __name__ == "__main__":
    sys.exit(main())
