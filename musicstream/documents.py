# documents.py
"""
Thin adapter over Firestore for the collections the functions read and write.

Documents come back as plain dicts with their id under ``"id"``. Every document
gets ``created_at``/``updated_at`` server timestamps, and documents written on
behalf of a user carry a ``permissions`` list of tags such as
``read("user:<uid>")``.
"""
import datetime
import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter, Or

from .config import FunctionConfig
from .errors import NotFound

logger = logging.getLogger(__name__)

# Firestore caps the number of document references fetched in one batch.
GET_MANY_CHUNK = 100


class Where(NamedTuple):
    field: str
    op: str
    value: Any


class AnyOf(NamedTuple):
    """Matches when at least one of the filters matches."""
    filters: Tuple[Where, ...]


Filter = Union[Where, AnyOf]


def where(field: str, op: str, value: Any) -> Where:
    return Where(field, op, value)


def any_of(*filters: Where) -> AnyOf:
    return AnyOf(tuple(filters))


def prefix(field: str, text: str) -> List[Where]:
    """Range filters matching string values of ``field`` that start with ``text``."""
    return [Where(field, ">=", text), Where(field, "<=", text + "\uf8ff")]


class Page(NamedTuple):
    documents: List[Dict[str, Any]]
    total: int


class DocumentNotFound(NotFound):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class Role:
    @staticmethod
    def user(user_id: str) -> str:
        return f"user:{user_id}"

    @staticmethod
    def any() -> str:
        return "any"


class Permission:
    @staticmethod
    def read(role: str) -> str:
        return f'read("{role}")'

    @staticmethod
    def update(role: str) -> str:
        return f'update("{role}")'

    @staticmethod
    def delete(role: str) -> str:
        return f'delete("{role}")'


def owner_permissions(user_id: str, update: bool = True) -> List[str]:
    role = Role.user(user_id)
    perms = [Permission.read(role)]
    if update:
        perms.append(Permission.update(role))
    perms.append(Permission.delete(role))
    return perms


def _plain(value):
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    return value


def _to_firestore_filter(f: Filter):
    if isinstance(f, AnyOf):
        return Or(filters=[FieldFilter(w.field, w.op, w.value) for w in f.filters])
    return FieldFilter(f.field, f.op, f.value)


class DocumentStore:
    def __init__(self, client: firestore.Client):
        self._client = client

    @classmethod
    def from_config(cls, config: FunctionConfig) -> "DocumentStore":
        client = firestore.Client(project=config.project_id, database=config.database_id,
                                  client_options=config.client_options() or None)
        return cls(client)

    def _snapshot_to_dict(self, snapshot) -> Dict[str, Any]:
        data = {k: _plain(v) for k, v in (snapshot.to_dict() or {}).items()}
        data["id"] = snapshot.id
        return data

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return self._snapshot_to_dict(snapshot)

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Fetch documents by id, in the order given. Missing ids are skipped."""
        coll = self._client.collection(collection)
        found: Dict[str, Dict[str, Any]] = {}
        ids = list(dict.fromkeys(doc_ids))
        for start in range(0, len(ids), GET_MANY_CHUNK):
            refs = [coll.document(doc_id) for doc_id in ids[start:start + GET_MANY_CHUNK]]
            for snapshot in self._client.get_all(refs):
                if snapshot.exists:
                    found[snapshot.id] = self._snapshot_to_dict(snapshot)
        return [found[doc_id] for doc_id in doc_ids if doc_id in found]

    def list(self, collection: str, filters: Iterable[Filter] = (),
             order_by: Iterable[Tuple[str, str]] = (), limit: Optional[int] = None,
             offset: int = 0, select: Optional[Sequence[str]] = None) -> Page:
        """
        Query a collection. ``order_by`` holds (field, "asc"|"desc") pairs.
        ``total`` counts every match, ignoring limit and offset.
        """
        query = self._client.collection(collection)
        for f in filters:
            query = query.where(filter=_to_firestore_filter(f))
        base = query

        for field_name, direction in order_by:
            query = query.order_by(
                field_name,
                direction=firestore.Query.DESCENDING if direction == "desc" else firestore.Query.ASCENDING,
            )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        if select:
            query = query.select(list(select))

        documents = [self._snapshot_to_dict(s) for s in query.stream()]
        return Page(documents, self._count(base))

    def _count(self, query) -> int:
        results = query.count(alias="total").get()
        for group in results:
            for aggregation in group:
                return int(aggregation.value)
        return 0

    def create(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None,
               permissions: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        coll = self._client.collection(collection)
        ref = coll.document(doc_id) if doc_id else coll.document()
        payload = dict(data)
        payload["permissions"] = list(permissions or [])
        payload["created_at"] = firestore.SERVER_TIMESTAMP
        payload["updated_at"] = firestore.SERVER_TIMESTAMP
        ref.create(payload)
        return self._snapshot_to_dict(ref.get())

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ref = self._client.collection(collection).document(doc_id)
        payload = dict(data)
        payload["updated_at"] = firestore.SERVER_TIMESTAMP
        try:
            ref.update(payload)
        except gexc.NotFound:
            raise DocumentNotFound(collection, doc_id)
        return self._snapshot_to_dict(ref.get())

    def delete(self, collection: str, doc_id: str) -> None:
        self._client.collection(collection).document(doc_id).delete()
