"""Shared fixtures: in-memory stores, a mocked HTTP session and a Flask test client."""

import copy
import datetime
import itertools
from collections import defaultdict
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests
from google.api_core import exceptions as gexc
from requests.structures import CaseInsensitiveDict

from musicstream import runtime
from musicstream.auth import google_id_token
from musicstream.blobstore import CachedBlob
from musicstream.config import FunctionConfig
from musicstream.documents import AnyOf, DocumentNotFound, Page
from musicstream.errors import CacheWriteFailed


# ============================================================================
# Fakes
# ============================================================================


class FakeDocumentStore:
    """Dict-backed stand-in for DocumentStore with the same query semantics."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.failures: Dict[tuple, Exception] = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _now(self) -> str:
        base = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
        return (base + datetime.timedelta(seconds=next(self._clock))).isoformat()

    def _maybe_fail(self, method: str, collection: str):
        exc = self.failures.get((method, collection))
        if exc is not None:
            raise exc

    def seed(self, collection: str, doc_id: str, **fields) -> Dict[str, Any]:
        doc = dict(fields)
        doc.setdefault("created_at", self._now())
        doc["id"] = doc_id
        self.collections[collection][doc_id] = doc
        return copy.deepcopy(doc)

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.collections[collection].values()]

    # --- DocumentStore interface ---

    def get(self, collection, doc_id):
        self._maybe_fail("get", collection)
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def get_many(self, collection, doc_ids):
        self._maybe_fail("get_many", collection)
        docs = self.collections[collection]
        return [copy.deepcopy(docs[i]) for i in doc_ids if i in docs]

    def list(self, collection, filters=(), order_by=(), limit=None, offset=0, select=None):
        self._maybe_fail("list", collection)
        docs = [d for d in self.collections[collection].values() if all(_matches(d, f) for f in filters)]
        total = len(docs)
        for field_name, direction in reversed(list(order_by)):
            docs = [d for d in docs if d.get(field_name) is not None]
            docs.sort(key=lambda d: d[field_name], reverse=(direction == "desc"))
        if offset:
            docs = docs[offset:]
        if limit is not None:
            docs = docs[:limit]
        if select:
            docs = [dict({k: d.get(k) for k in select}, id=d["id"]) for d in docs]
        return Page([copy.deepcopy(d) for d in docs], total)

    def create(self, collection, data, doc_id=None, permissions=None):
        self._maybe_fail("create", collection)
        doc_id = doc_id or f"{collection}-{next(self._ids)}"
        if doc_id in self.collections[collection]:
            raise gexc.AlreadyExists(f"{collection}/{doc_id} already exists")
        now = self._now()
        doc = dict(data, id=doc_id, permissions=list(permissions or []), created_at=now, updated_at=now)
        self.collections[collection][doc_id] = doc
        return copy.deepcopy(doc)

    def update(self, collection, doc_id, data):
        self._maybe_fail("update", collection)
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        doc.update(data)
        doc["updated_at"] = self._now()
        return copy.deepcopy(doc)

    def delete(self, collection, doc_id):
        self._maybe_fail("delete", collection)
        self.collections[collection].pop(doc_id, None)


def _matches(doc, f) -> bool:
    if isinstance(f, AnyOf):
        return any(_matches(doc, w) for w in f.filters)
    value = doc.get(f.field)
    if f.op == "==":
        return value == f.value
    if f.op == "in":
        return value in f.value
    if value is None:
        return False
    if f.op == ">=":
        return value >= f.value
    if f.op == "<=":
        return value <= f.value
    if f.op == ">":
        return value > f.value
    if f.op == "<":
        return value < f.value
    raise AssertionError(f"Unsupported operator in fake store: {f.op}")


class FakeBlobStore:
    def __init__(self, bucket_name: str = "audio_files"):
        self.bucket_name = bucket_name
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.lookups = 0
        self.puts = 0
        self.put_error: Optional[Exception] = None

    def lookup(self, key):
        self.lookups += 1
        if key not in self.objects:
            return None
        return CachedBlob(key=key, content_type=self.content_types[key], size=len(self.objects[key]))

    def put(self, key, data, content_type, public=True):
        self.puts += 1
        if self.put_error is not None:
            raise CacheWriteFailed(key, self.put_error)
        self.objects[key] = data
        self.content_types[key] = content_type
        return CachedBlob(key=key, content_type=content_type, size=len(data))


def make_upstream_response(status: int = 200, content: bytes = b"ID3audio", headers=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.content = content
    response.headers = CaseInsensitiveDict(headers or {})
    return response


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def config():
    return FunctionConfig(project_id="test-project")


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def blobs():
    return FakeBlobStore()


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_upstream_response()
    session.request.return_value = make_upstream_response()
    return session


@pytest.fixture
def verified_tokens(monkeypatch):
    """Tokens of the form 'token-<uid>' verify as that user; anything else is rejected."""

    def verify(token, request, audience=None):
        if not token.startswith("token-"):
            raise ValueError("Could not verify token signature.")
        return {"sub": token[len("token-"):], "aud": audience}

    monkeypatch.setattr(google_id_token, "verify_firebase_token", verify)


@pytest.fixture
def client(monkeypatch, config, documents, blobs, session, verified_tokens):
    monkeypatch.setattr(runtime, "get_config", lambda: config)
    monkeypatch.setattr(runtime, "get_document_store", lambda: documents)
    monkeypatch.setattr(runtime, "get_blob_store", lambda: blobs)
    monkeypatch.setattr(runtime, "get_http_session", lambda: session)

    from musicstream.app import create_app

    flask_app = create_app()
    flask_app.testing = True
    return flask_app.test_client()


def auth_header(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{user_id}"}
