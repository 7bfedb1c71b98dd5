"""
main.py - Command-line entry point for the video link cleaner.

    python main.py              full scan in one pass
    python main.py --batched    one page at a time until a short page
    python main.py --scheduled  full scan only when auto scan is on and the last report is due
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

import database
from config import Config
from media_library import total_batches
from models import BatchResult, ScanReport, ScanSettings
from scan_log import configure_file_logging
from scan_report import format_report, load_last_report, merge_batch_results, save_last_report
from scan_runner import load_scan_settings, run_batch, run_full_scan

# Set up logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)


def run_batched_scan(settings: ScanSettings) -> ScanReport:
    """Drives run_batch page by page and merges the pages into one report."""
    results: List[BatchResult] = []
    pages = total_batches(settings.batch_size)
    for batch_index in range(pages):
        result = run_batch(batch_index, settings.batch_size, settings=settings)
        results.append(result)
        logger.info("Processed batch %s of %s", batch_index + 1, pages)
        if result.processed_count < settings.batch_size:
            break
    return merge_batch_results(results)


def is_scan_due(settings: ScanSettings, last_report: Optional[ScanReport], now: Optional[datetime] = None) -> bool:
    if not settings.auto_scan_enabled:
        return False
    if last_report is None or not last_report.timestamp:
        return True
    try:
        last_run = datetime.fromisoformat(last_report.timestamp)
    except ValueError:
        return True
    if last_run.tzinfo is None:
        last_run = last_run.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - last_run >= settings.interval


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Find unreachable videos and remove them from their posts.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--batched", action="store_true", help="process one page of records at a time")
    mode.add_argument("--scheduled", action="store_true", help="scan only when an automatic scan is due")
    parser.add_argument("--init-db", action="store_true", help="create the tables before scanning")
    args = parser.parse_args(argv)

    config = Config()
    if args.init_db:
        database.create_tables()
        logger.info("Database tables created or already exist.")

    settings = load_scan_settings()
    configure_file_logging(settings, config.LOG_FILE)

    if args.scheduled and not is_scan_due(settings, load_last_report()):
        logger.info("No scan due (auto scan %s, every %s)",
                    "on" if settings.auto_scan_enabled else "off", settings.scan_frequency)
        return 0

    report = run_batched_scan(settings) if args.batched else run_full_scan(settings)
    save_last_report(report)

    for line in format_report(report):
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
