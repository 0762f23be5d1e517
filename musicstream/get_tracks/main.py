# main.py
import logging
from typing import Any, Dict

from .. import runtime
from ..auth import authenticate
from ..documents import DocumentStore, prefix, where
from ..http import as_int, clamp, read_json_body, serve

logger = logging.getLogger(__name__)

TRACKS = "tracks"
SORT_FIELDS = {
    "createdAt": "created_at",
    "playCount": "play_count",
    "title": "title",
}


class TrackCatalog:
    def __init__(self, store: DocumentStore):
        self.store = store

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        limit = clamp(as_int(body.get("limit"), 25), 1, 100)
        offset = max(0, as_int(body.get("offset"), 0))
        genre = body.get("genre").strip() if isinstance(body.get("genre"), str) else None
        search = body.get("search").strip() if isinstance(body.get("search"), str) else None
        sort_field = SORT_FIELDS.get(body.get("sortBy") or "createdAt", "created_at")
        sort_order = "asc" if body.get("sortOrder") == "asc" else "desc"

        logger.info(f"Fetching tracks: limit={limit}, offset={offset}, genre={genre}, search={search}")

        filters = []
        order_by = []
        if genre:
            filters.append(where("genre", "==", genre))
        if search and len(search) >= 2:
            filters.extend(prefix("title", search))
            # Range filters must be ordered on the same field first
            if sort_field != "title":
                order_by.append(("title", "asc"))
        order_by.append((sort_field, sort_order))

        page = self.store.list(TRACKS, filters=filters, order_by=order_by, limit=limit, offset=offset)
        logger.info(f"Found {page.total} tracks, returning {len(page.documents)}")

        return {
            "data": page.documents,
            "total": page.total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(page.documents) < page.total,
        }


def get_tracks(request):
    """
    An HTTP-triggered Cloud Function that pages through the track catalogue with
    optional genre filter, title search and sorting. Requires a signed-in user.
    """
    def handle():
        authenticate(request, runtime.get_config(), message="Authentication required")
        body = read_json_body(request)
        return TrackCatalog(runtime.get_document_store()).handle(body)

    return serve(request, handle, methods=("GET", "POST"), label="Track fetch")
