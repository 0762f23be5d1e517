# main.py
import logging
from typing import Any, Dict

from .. import runtime
from ..auth import Identity, authenticate
from ..documents import DocumentStore, owner_permissions, where
from ..errors import InvalidRequest
from ..http import as_int, read_json_body, serve

logger = logging.getLogger(__name__)

FAVORITES = "favorites"
TRACKS = "tracks"
# Tracks uploaded to our own catalogue, as opposed to third-party ones.
CATALOG_SOURCE = "appwrite"
MAX_PAGE = 100
MAX_IDS = 500


class FavoritesManager:
    def __init__(self, store: DocumentStore, identity: Identity):
        self.store = store
        self.user_id = identity.user_id

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        action = body.get("action")
        logger.info(f"Favorites action: {action} by user: {self.user_id}")

        if action in ("check", "add", "remove", "toggle"):
            track_id = body.get("trackId")
            if not track_id:
                raise InvalidRequest("Track ID required")
            source = body.get("trackSource") or "jamendo"
            if action == "check":
                return {"isFavorite": self._find(track_id) is not None}
            if action == "add":
                return self.add(track_id, source)
            if action == "remove":
                return self.remove(track_id)
            return self.toggle(track_id, source)

        if action == "list":
            return self.list(as_int(body.get("limit"), 50), as_int(body.get("offset"), 0))
        if action == "get_ids":
            return self.get_ids()
        raise InvalidRequest("Invalid action")

    def _find(self, track_id: str):
        page = self.store.list(
            FAVORITES,
            filters=[where("user_id", "==", self.user_id), where("track_id", "==", track_id)],
            limit=1,
        )
        return page.documents[0] if page.documents else None

    def _create(self, track_id: str, source: str):
        return self.store.create(
            FAVORITES,
            {"user_id": self.user_id, "track_id": track_id, "track_source": source},
            permissions=owner_permissions(self.user_id, update=False),
        )

    def add(self, track_id: str, source: str):
        if self._find(track_id) is not None:
            return {"alreadyExists": True}
        return {"data": self._create(track_id, source)}

    def remove(self, track_id: str):
        existing = self._find(track_id)
        if existing is not None:
            self.store.delete(FAVORITES, existing["id"])
        return {}

    def toggle(self, track_id: str, source: str):
        existing = self._find(track_id)
        if existing is not None:
            self.store.delete(FAVORITES, existing["id"])
            return {"isFavorite": False}
        self._create(track_id, source)
        return {"isFavorite": True}

    def list(self, limit: int, offset: int):
        offset = max(0, offset)
        page = self.store.list(
            FAVORITES,
            filters=[where("user_id", "==", self.user_id)],
            order_by=[("created_at", "desc")],
            limit=max(1, min(limit, MAX_PAGE)),
            offset=offset,
        )

        data = []
        for fav in page.documents:
            if fav.get("track_source") == CATALOG_SOURCE:
                track = self.store.get(TRACKS, fav["track_id"])
                if track is not None:
                    fav = dict(fav, track=track)
            data.append(fav)

        return {
            "data": data,
            "total": page.total,
            "hasMore": offset + len(page.documents) < page.total,
        }

    def get_ids(self):
        page = self.store.list(
            FAVORITES,
            filters=[where("user_id", "==", self.user_id)],
            select=["track_id"],
            limit=MAX_IDS,
        )
        return {"ids": [f["track_id"] for f in page.documents], "total": page.total}


def manage_favorites(request):
    """
    An HTTP-triggered Cloud Function to add, remove, toggle and list favorite tracks.
    Expects a POST with a JSON body: {"action": "...", "trackId": ...}
    """
    def handle():
        identity = authenticate(request, runtime.get_config())
        body = read_json_body(request)
        return FavoritesManager(runtime.get_document_store(), identity).handle(body)

    return serve(request, handle, methods=("POST",), label="Favorites operation")
