"""
database.py - Content store access layer for the video link cleaner.

This module encapsulates all direct interactions with PostgreSQL: the schema,
paging of media records, document bodies, and the option rows that hold the
persisted scan settings and the last report.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor, Json

from config import Config
from errors import PersistenceError

logger = logging.getLogger(__name__)

config = Config()

DATABASE_URL = config.database_url

MEDIA_COLUMNS = "media_id, url, document_id, mime_type, status"


@contextmanager
def _connection():
    """Context manager that yields a PostgreSQL connection."""
    conn = psycopg2.connect(DATABASE_URL)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def _cursor(*, commit: bool = False, dict_cursor: bool = False):
    """
    Context manager that yields a cursor and automatically handles commits/rollbacks.
    """
    cursor_factory = RealDictCursor if dict_cursor else None
    with _connection() as conn:
        cur = conn.cursor(cursor_factory=cursor_factory)
        try:
            yield cur
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            logger.exception("Database error")
            raise
        finally:
            cur.close()


@contextmanager
def _write_cursor(action: str):
    """A committing cursor whose driver errors surface as PersistenceError."""
    try:
        with _cursor(commit=True) as cur:
            yield cur
    except psycopg2.Error as exc:
        raise PersistenceError(f"Failed to {action}: {exc}") from exc


def create_tables() -> None:
    """Creates the schema used by the cleaner when it does not exist yet."""
    with _cursor(commit=True) as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                document_id SERIAL PRIMARY KEY,
                title       TEXT,
                body        TEXT NOT NULL DEFAULT '',
                status      VARCHAR(20) NOT NULL DEFAULT 'publish',
                updated_at  TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS media_records (
                media_id       SERIAL PRIMARY KEY,
                document_id    INT REFERENCES documents(document_id) ON DELETE SET NULL,
                url            TEXT,
                mime_type      VARCHAR(100) NOT NULL,
                status         VARCHAR(20) NOT NULL DEFAULT 'active',
                quarantined_at TIMESTAMP WITH TIME ZONE,
                updated_at     TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS cleaner_options (
                name       VARCHAR(100) PRIMARY KEY,
                value      JSONB NOT NULL,
                updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_media_records_mime ON media_records (lower(mime_type), media_id);"
        )


def list_media_records(
    mime_types: Sequence[str],
    *,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Returns media rows whose MIME type is one of ``mime_types``, ordered by id.

    ``limit=None`` returns every matching row. Driver errors propagate.
    """
    query = (
        f"SELECT {MEDIA_COLUMNS} FROM media_records "
        "WHERE lower(mime_type) = ANY(%s) "
        "ORDER BY media_id ASC"
    )
    params: List[Any] = [[mime.lower() for mime in mime_types]]
    if limit is not None:
        query += " LIMIT %s OFFSET %s"
        params.extend([limit, offset])
    elif offset:
        query += " OFFSET %s"
        params.append(offset)

    with _cursor(dict_cursor=True) as cur:
        cur.execute(query + ";", params)
        return [dict(row) for row in cur.fetchall()]


def count_media_records(mime_types: Sequence[str]) -> int:
    """Counts media rows whose MIME type is one of ``mime_types``."""
    with _cursor() as cur:
        cur.execute(
            "SELECT COUNT(*) FROM media_records WHERE lower(mime_type) = ANY(%s);",
            ([mime.lower() for mime in mime_types],),
        )
        row = cur.fetchone()
        return int(row[0]) if row else 0


def get_document(document_id: int) -> Optional[Dict[str, Any]]:
    """Returns the document row or None when it does not exist."""
    with _cursor(dict_cursor=True) as cur:
        cur.execute(
            "SELECT document_id, title, body, status FROM documents WHERE document_id = %s;",
            (document_id,),
        )
        row = cur.fetchone()
        return dict(row) if row else None


def get_document_status(document_id: int) -> Optional[str]:
    """Returns the document status, or None when the document does not exist."""
    with _cursor() as cur:
        cur.execute("SELECT status FROM documents WHERE document_id = %s;", (document_id,))
        row = cur.fetchone()
        return row[0] if row else None


def update_document_body(document_id: int, body: str) -> None:
    """Replaces a document body."""
    with _write_cursor(f"update document {document_id}") as cur:
        cur.execute(
            """
            UPDATE documents
            SET body = %s, updated_at = CURRENT_TIMESTAMP
            WHERE document_id = %s;
            """,
            (body, document_id),
        )
        if cur.rowcount == 0:
            raise PersistenceError(f"Document {document_id} no longer exists")


def clear_media_parent(media_id: int) -> None:
    """Detaches a media record from its document. Repeating it is a no-op."""
    with _write_cursor(f"unlink media {media_id}") as cur:
        cur.execute(
            """
            UPDATE media_records
            SET document_id = NULL, updated_at = CURRENT_TIMESTAMP
            WHERE media_id = %s AND document_id IS NOT NULL;
            """,
            (media_id,),
        )


def quarantine_media(media_id: int) -> None:
    """Soft-deletes a media record. Repeating it is a no-op."""
    with _write_cursor(f"quarantine media {media_id}") as cur:
        cur.execute(
            """
            UPDATE media_records
            SET status = 'quarantined',
                quarantined_at = CURRENT_TIMESTAMP,
                updated_at = CURRENT_TIMESTAMP
            WHERE media_id = %s AND status <> 'quarantined';
            """,
            (media_id,),
        )


def get_option(name: str, default: Any = None) -> Any:
    """Returns the JSON value stored under ``name``."""
    with _cursor() as cur:
        cur.execute("SELECT value FROM cleaner_options WHERE name = %s;", (name,))
        row = cur.fetchone()
        return row[0] if row else default


def update_option(name: str, value: Any) -> None:
    """Stores ``value`` under ``name``, replacing whatever was there."""
    with _write_cursor(f"save option {name}") as cur:
        cur.execute(
            """
            INSERT INTO cleaner_options (name, value)
            VALUES (%s, %s)
            ON CONFLICT (name) DO UPDATE SET
                value      = EXCLUDED.value,
                updated_at = CURRENT_TIMESTAMP;
            """,
            (name, Json(value)),
        )
