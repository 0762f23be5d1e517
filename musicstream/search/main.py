# main.py
import concurrent.futures
import logging
from typing import Any, Dict, List

from .. import runtime
from ..documents import DocumentStore, prefix
from ..errors import InvalidRequest
from ..http import as_int, clamp, read_json_body, serve

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("tracks", "podcasts", "episodes")
MIN_QUERY_LENGTH = 2


class CatalogSearch:
    """Title-prefix search across tracks, podcasts and episodes."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def _by_prefix(self, collection: str, field: str, term: str, limit: int) -> List[Dict[str, Any]]:
        return self.store.list(collection, filters=prefix(field, term), order_by=[(field, "asc")],
                               limit=limit).documents

    def _tracks(self, term: str, limit: int):
        try:
            tracks = self._by_prefix("tracks", "title", term, limit)
        except Exception as e:
            logger.warning(f"Track title search failed, falling back to artist: {e}")
            tracks = []
        if not tracks:
            tracks = self._by_prefix("tracks", "artist", term, limit)
        return tracks

    def _titles(self, collection: str, term: str, limit: int):
        try:
            return self._by_prefix(collection, "title", term, limit)
        except Exception as e:
            logger.warning(f"{collection} search failed: {e}")
            return []

    def search(self, query, types=SEARCH_TYPES, limit: int = 10) -> Dict[str, Any]:
        term = query.strip() if isinstance(query, str) else ""
        if len(term) < MIN_QUERY_LENGTH:
            raise InvalidRequest("Search query must be at least 2 characters")

        if isinstance(types, str):
            types = [t.strip() for t in types.split(",")]
        wanted = [t for t in SEARCH_TYPES if t in (types or SEARCH_TYPES)]
        limit = clamp(limit, 1, 25)
        logger.info(f"Searching for: \"{term}\" in {', '.join(wanted)}")

        results = {t: [] for t in SEARCH_TYPES}
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(SEARCH_TYPES)) as executor:
            futures = {}
            for t in wanted:
                if t == "tracks":
                    futures[executor.submit(self._tracks, term, limit)] = t
                else:
                    futures[executor.submit(self._titles, t, term, limit)] = t
            for future in concurrent.futures.as_completed(futures):
                results[futures[future]] = future.result()

        total = sum(len(v) for v in results.values())
        logger.info(f"Found {total} results")
        return {"query": term, "results": results, "total": total}


def search(request):
    """
    An HTTP-triggered Cloud Function for catalogue search.
    Expects {"query": "...", "types": ["tracks", "podcasts", "episodes"], "limit": 10}
    """
    def handle():
        body = read_json_body(request)
        return CatalogSearch(runtime.get_document_store()).search(
            body.get("query"),
            types=body.get("types") or SEARCH_TYPES,
            limit=as_int(body.get("limit"), 10),
        )

    return serve(request, handle, methods=("GET", "POST"), label="Search")
