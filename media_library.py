"""
media_library.py - Paged listing of the video records held by the content store.
"""

import logging
import math
from typing import Any, Dict, List

import database
from models import MediaRecord, STATUS_ACTIVE

logger = logging.getLogger(__name__)

# Canonical MIME types plus the legacy aliases uploads were stored under for the same containers.
VIDEO_MIME_TYPES = (
    "video/mp4",
    "video/x-m4v",
    "video/quicktime",
    "video/mov",
    "video/x-ms-wmv",
    "video/wmv",
    "video/x-flv",
    "video/webm",
    "video/ogg",
    "application/ogg",
    "video/x-matroska",
    "video/mkv",
    "video/avi",
    "video/x-msvideo",
    "video/3gpp",
    "video/3gp",
)


def _to_record(row: Dict[str, Any]) -> MediaRecord:
    parent_id = row.get("document_id")
    return MediaRecord(
        id=int(row["media_id"]),
        url=row.get("url") or None,
        parent_id=int(parent_id) if parent_id else None,
        mime_type=row.get("mime_type") or "",
        status=row.get("status") or STATUS_ACTIVE,
    )


def list_video_attachments(offset: int = 0, limit: int = -1) -> List[MediaRecord]:
    """
    Lists video records ordered by id.

    ``limit <= 0`` returns every record and ignores ``offset``. Quarantined
    records are included so that offsets stay stable while a paged run
    quarantines records on earlier pages.
    """
    if offset < 0:
        raise ValueError(f"offset must not be negative, got {offset}")

    if limit > 0:
        rows = database.list_media_records(VIDEO_MIME_TYPES, offset=offset, limit=limit)
    else:
        rows = database.list_media_records(VIDEO_MIME_TYPES)

    records = [_to_record(row) for row in rows]
    logger.debug("Listed %s video records (offset=%s, limit=%s)", len(records), offset, limit)
    return records


def count_video_attachments() -> int:
    return database.count_media_records(VIDEO_MIME_TYPES)


def total_batches(batch_size: int) -> int:
    """Number of pages of ``batch_size`` needed to cover every video record."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return math.ceil(count_video_attachments() / batch_size)
