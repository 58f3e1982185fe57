#!/usr/bin/env python3
"""
Bikepark Reports - Cache Update Script
Refreshes the report cache tables from the raw transaction and occupancy data.

Run nightly, after the raw data of the previous day is complete.

Usage:
    python -m scripts.update_report_caches [--from YYYY-MM-DD] [--to YYYY-MM-DD]
                                           [--full] [--caches NAME ...]
                                           [--resume-from YYYY-MM-DD]

Options:
    --from         First day to refresh (default: yesterday)
    --to           Last day to refresh (default: tomorrow)
    --full         One update over the whole range instead of one per day
    --caches       Subset of transactionscache, bezettingencache, stallingsduurcache
    --resume-from  Continue an incremental run that failed on this day;
                   skips the initial clear

Cron example (daily at 3 AM):
    0 3 * * * cd /path/to/package/src && python -m scripts.update_report_caches
"""

import sys
import argparse
from pathlib import Path
from datetime import datetime, timedelta

# Add src to path
backend_src = Path(__file__).parent.parent
sys.path.insert(0, str(backend_src.absolute()))

from utils.logger import logger
from utils.timezone import day_after, get_now_local, start_of_day
from processor.cache_update_driver import ALL_CACHES, CacheUpdateDriver


def _parse_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date format: {value}. Use YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Refresh the bikepark report cache tables'
    )
    parser.add_argument('--from', dest='start', type=_parse_day,
                        help='First day to refresh (YYYY-MM-DD, default: yesterday)')
    parser.add_argument('--to', dest='end', type=_parse_day,
                        help='Last day to refresh (YYYY-MM-DD, default: tomorrow)')
    parser.add_argument('--full', action='store_true',
                        help='Single update over the whole range')
    parser.add_argument('--caches', nargs='+', choices=ALL_CACHES, default=list(ALL_CACHES),
                        help='Caches to refresh (default: all)')
    parser.add_argument('--resume-from', dest='resume_from', type=_parse_day,
                        help='Resume an incremental run from this day without clearing first')
    return parser


def main(argv=None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    today = start_of_day(get_now_local())
    start = args.start or today - timedelta(days=1)
    end = args.end or day_after(today)
    clear_first = True

    if args.resume_from:
        if args.full:
            logger.error("--resume-from only applies to incremental runs")
            return 2
        start = args.resume_from
        clear_first = False

    logger.info("=" * 60)
    logger.info(f"REPORT CACHE UPDATE - {start.date()} to {end.date()}")
    logger.info("=" * 60)

    try:
        results = CacheUpdateDriver().run(start, end, full=args.full, caches=args.caches,
                                          clear_first=clear_first)
    except ValueError as e:
        logger.error(str(e))
        return 2

    failed = [result for result in results.values() if not result.success]
    for result in results.values():
        logger.info(result.summary)

    if failed:
        resume = min((r.resume_from for r in failed if r.resume_from), default=None)
        if resume and not args.full:
            logger.error(f"Cache update incomplete; rerun with --resume-from {resume.isoformat()}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
