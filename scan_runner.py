"""
scan_runner.py - Full-scan and single-page entry points.

Both entry points build their own RunLog and HTTP session, so calling them
repeatedly never carries errors or connections from one call into the next.
Enumeration failures are not caught here; they reach the caller.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

import database
from link_health import build_session
from media_library import list_video_attachments
from models import ActionOutcome, BatchResult, MediaRecord, ScanReport, ScanSettings
from remediation import process_record
from scan_log import RunLog
from scan_report import build_batch_result, build_report

logger = logging.getLogger(__name__)

OPTION_SETTINGS = "video_cleaner_settings"


def load_scan_settings() -> ScanSettings:
    """Persisted overrides merged over the defaults."""
    return ScanSettings.from_overrides(database.get_option(OPTION_SETTINGS) or {})


def save_scan_settings(overrides: Dict[str, Any]) -> ScanSettings:
    """Normalises ``overrides`` and persists the result, which is also returned."""
    settings = ScanSettings.from_overrides(overrides)
    database.update_option(OPTION_SETTINGS, settings.to_dict())
    logger.info("Settings updated")
    return settings


def _process_records(
    records: Iterable[MediaRecord],
    settings: ScanSettings,
    run_log: RunLog,
    session: Optional[requests.Session],
) -> List[ActionOutcome]:
    own_session = session is None
    if own_session:
        session = build_session()
    try:
        outcomes = []
        for record in records:
            result = process_record(record, settings, run_log, session=session)
            if result.outcome is not None:
                outcomes.append(result.outcome)
        return outcomes
    finally:
        if own_session:
            session.close()


def _scan(
    offset: int,
    limit: int,
    settings: ScanSettings,
    session: Optional[requests.Session],
) -> Tuple[int, List[ActionOutcome], List[str]]:
    run_log = RunLog()
    records = list_video_attachments(offset=offset, limit=limit)
    run_log.info("Found %s videos to scan (offset=%s)", len(records), offset)
    outcomes = _process_records(records, settings, run_log, session)
    return len(records), outcomes, run_log.errors


def run_full_scan(
    settings: Optional[ScanSettings] = None,
    session: Optional[requests.Session] = None,
) -> ScanReport:
    """Checks every video record in one pass and returns the report for the caller to persist."""
    settings = settings or load_scan_settings()
    logger.info("Starting full scan")

    total, outcomes, errors = _scan(0, -1, settings, session)

    report = build_report(total, outcomes, errors)
    logger.info("Scan completed: %s total, %s broken", report.total_scanned, report.broken_count)
    return report


def run_batch(
    batch_index: int,
    batch_size: Optional[int] = None,
    settings: Optional[ScanSettings] = None,
    session: Optional[requests.Session] = None,
) -> BatchResult:
    """
    Processes exactly one page of video records, starting at ``batch_index * batch_size``.

    The caller advances ``batch_index`` and stops after a page that returns
    fewer than ``batch_size`` records.
    """
    settings = settings or load_scan_settings()
    batch_size = settings.batch_size if batch_size is None else batch_size
    if batch_index < 0:
        raise ValueError(f"batch_index must not be negative, got {batch_index}")
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    offset = batch_index * batch_size
    logger.info("Processing batch %s (offset: %s)", batch_index, offset)

    processed, outcomes, errors = _scan(offset, batch_size, settings, session)
    return build_batch_result(processed, outcomes, errors)
