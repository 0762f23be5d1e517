# main.py
import datetime
import logging
from typing import Any, Dict, Optional

from .. import runtime
from ..auth import Identity, authenticate
from ..documents import DocumentStore, owner_permissions, where
from ..errors import Conflict, Forbidden, InvalidRequest, NotFound
from ..http import as_int, read_json_body, serve

logger = logging.getLogger(__name__)

PLAYLISTS = "playlists"
PLAYLIST_TRACKS = "playlist_tracks"
TRACKS = "tracks"


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


class PlaylistManager:
    """CRUD for a user's playlists and the tracks in them."""

    def __init__(self, store: DocumentStore, identity: Identity):
        self.store = store
        self.user_id = identity.user_id

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        action = body.get("action")
        logger.info(f"Playlist action: {action} by user: {self.user_id}")

        handler = {
            "create": self.create,
            "list": self.list,
            "read": self.read,
            "update": self.update,
            "delete": self.delete,
            "add_track": self.add_track,
            "remove_track": self.remove_track,
        }.get(action)
        if handler is None:
            raise InvalidRequest("Invalid action")
        return handler(body)

    def _require_playlist_id(self, body) -> str:
        playlist_id = body.get("playlistId")
        if not playlist_id:
            raise InvalidRequest("Playlist ID required")
        return playlist_id

    def _require_track_ids(self, body):
        playlist_id, track_id = body.get("playlistId"), body.get("trackId")
        if not playlist_id or not track_id:
            raise InvalidRequest("Playlist ID and Track ID required")
        return playlist_id, track_id

    def _load(self, playlist_id: str) -> Dict[str, Any]:
        playlist = self.store.get(PLAYLISTS, playlist_id)
        if playlist is None:
            raise NotFound("Playlist not found")
        return playlist

    def _load_owned(self, playlist_id: str) -> Dict[str, Any]:
        playlist = self._load(playlist_id)
        if playlist.get("user_id") != self.user_id:
            raise Forbidden("Access denied")
        return playlist

    def _entries(self, playlist_id: str, track_id: Optional[str] = None, **kwargs):
        filters = [where("playlist_id", "==", playlist_id)]
        if track_id is not None:
            filters.append(where("track_id", "==", track_id))
        return self.store.list(PLAYLIST_TRACKS, filters=filters, **kwargs)

    def create(self, body):
        name = _clean(body.get("name"))
        if not name:
            raise InvalidRequest("Name is required")

        playlist = self.store.create(
            PLAYLISTS,
            {
                "user_id": self.user_id,
                "name": name,
                "description": _clean(body.get("description")),
                "is_public": False,
            },
            permissions=owner_permissions(self.user_id),
        )
        return {"data": playlist}

    def list(self, body):
        page = self.store.list(
            PLAYLISTS,
            filters=[where("user_id", "==", self.user_id)],
            order_by=[("created_at", "desc")],
        )
        return {"data": page.documents}

    def read(self, body):
        playlist_id = self._require_playlist_id(body)
        playlist = self._load(playlist_id)

        # Owners see everything; others only public playlists
        if playlist.get("user_id") != self.user_id and not playlist.get("is_public"):
            raise Forbidden("Access denied")

        entries = self._entries(playlist_id, order_by=[("position", "asc")]).documents
        track_ids = [e["track_id"] for e in entries]
        tracks = self.store.get_many(TRACKS, track_ids) if track_ids else []

        data = dict(playlist)
        data["tracks"] = tracks
        return {"data": data}

    def update(self, body):
        playlist_id = self._require_playlist_id(body)
        self._load_owned(playlist_id)

        updates = {}
        name = _clean(body.get("name"))
        if name:
            updates["name"] = name
        if "description" in body:
            updates["description"] = _clean(body.get("description"))

        updated = self.store.update(PLAYLISTS, playlist_id, updates)
        return {"data": updated}

    def delete(self, body):
        playlist_id = self._require_playlist_id(body)
        self._load_owned(playlist_id)

        # Delete the playlist's track entries first
        for entry in self._entries(playlist_id).documents:
            self.store.delete(PLAYLIST_TRACKS, entry["id"])

        self.store.delete(PLAYLISTS, playlist_id)
        return {}

    def add_track(self, body):
        playlist_id, track_id = self._require_track_ids(body)
        self._load_owned(playlist_id)

        if self._entries(playlist_id, track_id, limit=1).documents:
            raise Conflict("Track already in playlist")

        if body.get("position") is None:
            last = self._entries(playlist_id, order_by=[("position", "desc")], limit=1).documents
            position = last[0]["position"] + 1 if last else 0
        else:
            position = as_int(body["position"], 0)

        entry = self.store.create(
            PLAYLIST_TRACKS,
            {
                "playlist_id": playlist_id,
                "track_id": track_id,
                "position": position,
                "added_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            },
            permissions=owner_permissions(self.user_id),
        )
        return {"data": entry}

    def remove_track(self, body):
        playlist_id, track_id = self._require_track_ids(body)
        self._load_owned(playlist_id)

        entries = self._entries(playlist_id, track_id).documents
        if not entries:
            raise NotFound("Track not in playlist")

        self.store.delete(PLAYLIST_TRACKS, entries[0]["id"])
        return {}


def manage_playlists(request):
    """
    An HTTP-triggered Cloud Function for playlist CRUD.
    Expects a POST with a JSON body: {"action": "...", "playlistId": ..., ...}
    """
    def handle():
        identity = authenticate(request, runtime.get_config())
        body = read_json_body(request)
        return PlaylistManager(runtime.get_document_store(), identity).handle(body)

    return serve(request, handle, methods=("POST",), label="Playlist operation")
