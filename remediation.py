"""
remediation.py - Drives one media record from check to quarantine.

    PENDING -> CHECKED -> SKIPPED
                       -> REMEDIATING -> REMEDIATED
                                      -> FAILED

A broken record has its references stripped from the parent document, its
parent relation cleared and is then quarantined. Whatever goes wrong while
checking or remediating one record is recorded and the caller moves on to
the next one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import requests

import database
from errors import PersistenceError
from link_health import is_broken
from models import ActionOutcome, MediaRecord, ScanSettings
from reference_remover import remove_references
from scan_log import RunLog

logger = logging.getLogger(__name__)

DELETED_DOCUMENT_STATUSES = {"trash", "deleted"}


class RecordState(str, Enum):
    PENDING = "pending"
    CHECKED = "checked"
    SKIPPED = "skipped"
    REMEDIATING = "remediating"
    REMEDIATED = "remediated"
    FAILED = "failed"


@dataclass
class RecordResult:
    record: MediaRecord
    state: RecordState = RecordState.PENDING
    broken: bool = False
    outcome: Optional[ActionOutcome] = None


def _parent_is_live(parent_id: int) -> bool:
    """True when the parent exists with a non-deleted status. Lookup failures count as absent."""
    try:
        status = database.get_document_status(parent_id)
    except Exception as exc:  # noqa: broad-except - a missing parent only skips the cleanup step
        logger.debug("Parent lookup for document %s failed: %s", parent_id, exc)
        return False
    return bool(status) and status not in DELETED_DOCUMENT_STATUSES


def _clean_parent(record: MediaRecord, run_log: RunLog) -> bool:
    """Strips references from the parent body and saves it when it changed."""
    document = database.get_document(record.parent_id)
    if not document:
        return False

    new_body, changed = remove_references(document.get("body") or "", record.id, record.url)
    if not changed:
        return False

    database.update_document_body(record.parent_id, new_body)
    run_log.info("Cleaned video references from post %s", record.parent_id)
    return True


def remediate_record(record: MediaRecord, run_log: RunLog) -> ActionOutcome:
    """
    Removes a broken record from circulation and returns what was done.

    Raises whatever the content store raises; process_record turns that into
    a recorded error.
    """
    actions: List[str] = []

    if record.parent_id and _parent_is_live(record.parent_id):
        if _clean_parent(record, run_log):
            actions.append(f"cleaned post {record.parent_id}")
        database.clear_media_parent(record.id)
        actions.append("unlinked from post")

    database.quarantine_media(record.id)
    actions.append("moved to trash")

    return ActionOutcome(
        attachment_id=record.id,
        url=record.url,
        parent_id=record.parent_id,
        actions=tuple(actions),
    )


def process_record(
    record: MediaRecord,
    settings: ScanSettings,
    run_log: RunLog,
    session: Optional[requests.Session] = None,
) -> RecordResult:
    """Checks one record and remediates it when broken. Never raises for per-record faults."""
    result = RecordResult(record=record)

    if record.is_quarantined:
        result.state = RecordState.SKIPPED
        logger.debug("Attachment %s is already quarantined; skipping", record.id)
        return result

    try:
        if not record.url:
            run_log.error(f"Could not get URL for attachment ID {record.id}")
            result.broken = True
        else:
            result.broken = is_broken(record.url, settings, run_log, session=session)
        result.state = RecordState.CHECKED

        if not result.broken:
            result.state = RecordState.SKIPPED
            return result

        result.state = RecordState.REMEDIATING
        result.outcome = remediate_record(record, run_log)
    except PersistenceError as exc:
        run_log.error(f"Error processing attachment {record.id}: {exc}")
        result.state = RecordState.FAILED
        return result
    except Exception as exc:  # noqa: broad-except - one record must never abort the run
        logger.exception("Unexpected error while processing attachment %s", record.id)
        run_log.error(f"Error processing attachment {record.id}: {exc}")
        result.state = RecordState.FAILED
        return result

    result.state = RecordState.REMEDIATED
    run_log.info(
        "Processed broken video ID %s: %s", record.id, ", ".join(result.outcome.actions)
    )
    return result
