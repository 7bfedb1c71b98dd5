import copy

import pytest
import requests

import database
from errors import PersistenceError


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.closed = False

    def close(self):
        self.closed = True


class FakeSession:
    """
    Stands in for requests.Session.

    ``head`` and ``get`` map a URL to a status code or an exception instance;
    URLs missing from ``get`` fall back to the ``head`` entry.
    """

    def __init__(self, head=None, get=None, default=200):
        self.head_routes = dict(head or {})
        self.get_routes = dict(get or {})
        self.default = default
        self.calls = []
        self.closed = False

    def _respond(self, routes, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        outcome = routes.get(url, self.head_routes.get(url, self.default))
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def head(self, url, **kwargs):
        return self._respond(self.head_routes, "HEAD", url, kwargs)

    def get(self, url, **kwargs):
        return self._respond(self.get_routes, "GET", url, kwargs)

    def close(self):
        self.closed = True

    def methods(self):
        return [method for method, _, _ in self.calls]


class FakeContentStore:
    """In-memory replacement for the database module's content store functions."""

    def __init__(self):
        self.media = {}
        self.documents = {}
        self.options = {}
        self.document_updates = []
        self.fail_on = {}

    def add_media(self, media_id, url, document_id=None, mime_type="video/mp4", status="active"):
        self.media[media_id] = {
            "media_id": media_id,
            "url": url,
            "document_id": document_id,
            "mime_type": mime_type,
            "status": status,
        }

    def add_document(self, document_id, body, status="publish"):
        self.documents[document_id] = {
            "document_id": document_id,
            "title": f"Post {document_id}",
            "body": body,
            "status": status,
        }

    def _maybe_fail(self, operation):
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    def list_media_records(self, mime_types, *, offset=0, limit=None):
        self._maybe_fail("list_media_records")
        allowed = {mime.lower() for mime in mime_types}
        rows = [
            copy.deepcopy(row)
            for _, row in sorted(self.media.items())
            if row["mime_type"].lower() in allowed
        ]
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count_media_records(self, mime_types):
        return len(self.list_media_records(mime_types))

    def get_document(self, document_id):
        self._maybe_fail("get_document")
        document = self.documents.get(document_id)
        return copy.deepcopy(document) if document else None

    def get_document_status(self, document_id):
        self._maybe_fail("get_document_status")
        document = self.documents.get(document_id)
        return document["status"] if document else None

    def update_document_body(self, document_id, body):
        self._maybe_fail("update_document_body")
        if document_id not in self.documents:
            raise PersistenceError(f"Document {document_id} no longer exists")
        self.documents[document_id]["body"] = body
        self.document_updates.append(document_id)

    def clear_media_parent(self, media_id):
        self._maybe_fail("clear_media_parent")
        if media_id in self.media:
            self.media[media_id]["document_id"] = None

    def quarantine_media(self, media_id):
        self._maybe_fail("quarantine_media")
        if media_id in self.media:
            self.media[media_id]["status"] = "quarantined"

    def get_option(self, name, default=None):
        return copy.deepcopy(self.options.get(name, default))

    def update_option(self, name, value):
        self.options[name] = copy.deepcopy(value)


STORE_FUNCTIONS = (
    "list_media_records",
    "count_media_records",
    "get_document",
    "get_document_status",
    "update_document_body",
    "clear_media_parent",
    "quarantine_media",
    "get_option",
    "update_option",
)


@pytest.fixture
def store(monkeypatch):
    """Replaces the PostgreSQL-backed content store with an in-memory one."""
    fake = FakeContentStore()
    for name in STORE_FUNCTIONS:
        monkeypatch.setattr(database, name, getattr(fake, name))
    return fake


@pytest.fixture
def connection_error():
    return requests.ConnectionError("Failed to establish a new connection")


@pytest.fixture
def make_session():
    return FakeSession
