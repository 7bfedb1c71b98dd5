"""
scan_report.py - Builds, merges, persists and formats scan reports.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import database
from models import ActionOutcome, BatchResult, ScanReport

logger = logging.getLogger(__name__)

OPTION_LAST_REPORT = "video_cleaner_last_report"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_report(
    total_scanned: int,
    outcomes: Iterable[ActionOutcome],
    errors: Iterable[str],
    timestamp: Optional[str] = None,
) -> ScanReport:
    outcomes = tuple(outcomes)
    if total_scanned < len(outcomes):
        raise ValueError(
            f"total_scanned ({total_scanned}) is smaller than the number of outcomes ({len(outcomes)})"
        )
    return ScanReport(
        timestamp=timestamp or _now(),
        total_scanned=total_scanned,
        broken_count=len(outcomes),
        outcomes=outcomes,
        errors=tuple(errors),
    )


def build_batch_result(
    processed_count: int,
    outcomes: Iterable[ActionOutcome],
    errors: Iterable[str],
) -> BatchResult:
    return BatchResult(
        processed_count=processed_count,
        broken=tuple(outcomes),
        errors=tuple(errors),
    )


def merge_batch_results(results: Iterable[BatchResult], timestamp: Optional[str] = None) -> ScanReport:
    """Folds the partial results of consecutive pages into one report."""
    total = 0
    outcomes: List[ActionOutcome] = []
    errors: List[str] = []
    for result in results:
        total += result.processed_count
        outcomes.extend(result.broken)
        errors.extend(result.errors)
    return build_report(total, outcomes, errors, timestamp=timestamp)


def save_last_report(report: ScanReport) -> None:
    """Overwrites the persisted last report."""
    database.update_option(OPTION_LAST_REPORT, report.to_dict())
    logger.info(
        "Saved scan report: %s scanned, %s broken", report.total_scanned, report.broken_count
    )


def load_last_report() -> Optional[ScanReport]:
    data = database.get_option(OPTION_LAST_REPORT)
    if not data:
        return None
    return ScanReport.from_dict(data)


def format_report(report: ScanReport) -> List[str]:
    """Summary line, one line per remediated record, then the errors."""
    lines = [f"Total videos: {report.total_scanned}; broken videos found: {report.broken_count}"]
    for outcome in report.outcomes:
        lines.append(
            f"ID {outcome.attachment_id} | {outcome.url} | Actions: {', '.join(outcome.actions)}"
        )
    for error in report.errors:
        lines.append(f"Error: {error}")
    return lines
