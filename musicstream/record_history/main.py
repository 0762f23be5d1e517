# main.py
import datetime
import logging
import math
from typing import Any, Dict, Optional

from .. import runtime
from ..auth import Identity, authenticate
from ..documents import DocumentStore, Permission, Role, any_of, owner_permissions, where
from ..errors import InvalidRequest
from ..http import as_bool, as_int, read_json_body, serve

logger = logging.getLogger(__name__)

RECENTLY_PLAYED = "recently_played"
TRACKS = "tracks"
EPISODES = "episodes"
MAX_HISTORY = 50
MAX_STRING = 255


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _truncate(value, limit: int = MAX_STRING) -> Optional[str]:
    if not value:
        return None
    value = str(value)
    return value[:limit]


def _position(value) -> int:
    try:
        return int(math.floor(float(value or 0)))
    except (TypeError, ValueError, OverflowError):
        raise InvalidRequest(f"Invalid position: {value!r}")


def track_from_metadata(item_id: str, meta: Dict[str, Any]) -> Dict[str, Any]:
    """Build a tracks document from the client-supplied metadata of a third-party track."""
    try:
        duration = float(meta.get("duration") or 0)
    except (TypeError, ValueError):
        duration = 0
    return {
        "title": _truncate(meta.get("title")) or "Unknown",
        "artist": _truncate(meta.get("artist")) or "Unknown",
        "album": _truncate(meta.get("album")),
        "duration": duration,
        "source": meta.get("source") or "jamendo",
        "jamendo_id": str(meta.get("jamendo_id") or item_id),
        "audio_url": meta.get("audio_url") or None,
        "audio_file_id": meta.get("audio_file_id") or None,
        "cover_url": meta.get("cover_url") or None,
        "cover_image_id": meta.get("cover_image_id") or None,
        "play_count": 1,
    }


class HistoryTracker:
    """Recently-played entries and resume positions for one user."""

    def __init__(self, store: DocumentStore, identity: Identity):
        self.store = store
        self.user_id = identity.user_id

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        action = body.get("action")
        logger.info(f"History action: {action} for user: {self.user_id}")

        item_id = body.get("itemId")
        if action in ("record", "update_position", "get_resume") and not item_id:
            raise InvalidRequest("Item ID required")

        if action == "record":
            return self.record(item_id, as_bool(body.get("isEpisode")), _position(body.get("position")),
                               body.get("metadata"))
        if action == "update_position":
            return self.update_position(item_id, _position(body.get("position")))
        if action == "get_history":
            return self.get_history(as_int(body.get("limit"), 20))
        if action == "get_resume":
            return self.get_resume(item_id)
        if action == "clear":
            return self.clear()
        raise InvalidRequest("Invalid action")

    def _find_entry(self, item_id: str, is_episode: Optional[bool] = None):
        if is_episode is None:
            item_filter = any_of(where("track_id", "==", item_id), where("episode_id", "==", item_id))
        else:
            item_filter = where("episode_id" if is_episode else "track_id", "==", item_id)
        page = self.store.list(
            RECENTLY_PLAYED,
            filters=[where("user_id", "==", self.user_id), item_filter],
            limit=1,
        )
        return page.documents[0] if page.documents else None

    def ingest_track(self, item_id: str, meta: Dict[str, Any]):
        """Make sure a third-party track has a tracks document. Failures are logged, not raised."""
        logger.info(f"[record] Received metadata for track {item_id}: title={meta.get('title')}, artist={meta.get('artist')}")
        try:
            if self.store.get(TRACKS, item_id) is not None:
                logger.info(f"[record] Track {item_id} already exists in DB.")
                return
            self.store.create(TRACKS, track_from_metadata(item_id, meta), doc_id=item_id,
                              permissions=[Permission.read(Role.any())])
            logger.info(f"[record] Successfully created track {item_id}")
        except Exception as e:
            # Recording the play matters more than the catalogue entry.
            logger.error(f"[record] Failed to ingest track {item_id}: {e}")

    def record(self, item_id: str, is_episode: bool, position: int, metadata=None):
        if metadata and not is_episode:
            self.ingest_track(item_id, metadata)

        existing = self._find_entry(item_id, is_episode)
        if existing is not None:
            updated = self.store.update(RECENTLY_PLAYED, existing["id"],
                                        {"last_position": position, "played_at": _now()})
            return {"data": updated}

        entry = self.store.create(
            RECENTLY_PLAYED,
            {
                "user_id": self.user_id,
                "episode_id" if is_episode else "track_id": item_id,
                "last_position": position,
                "played_at": _now(),
            },
            permissions=owner_permissions(self.user_id),
        )
        self.trim()
        return {"data": entry}

    def trim(self):
        """Keep only the MAX_HISTORY most recent entries."""
        stale = self.store.list(
            RECENTLY_PLAYED,
            filters=[where("user_id", "==", self.user_id)],
            order_by=[("played_at", "desc")],
            offset=MAX_HISTORY,
        ).documents
        for doc in stale:
            self.store.delete(RECENTLY_PLAYED, doc["id"])
        if stale:
            logger.info(f"Trimmed {len(stale)} old history entries for user: {self.user_id}")

    def update_position(self, item_id: str, position: int):
        existing = self._find_entry(item_id)
        if existing is not None:
            self.store.update(RECENTLY_PLAYED, existing["id"], {"last_position": position})
        return {}

    def get_history(self, limit: int):
        page = self.store.list(
            RECENTLY_PLAYED,
            filters=[where("user_id", "==", self.user_id)],
            order_by=[("played_at", "desc")],
            limit=max(1, min(limit, MAX_HISTORY)),
        )

        data = []
        for doc in page.documents:
            if doc.get("track_id"):
                track = self.store.get(TRACKS, doc["track_id"])
                if track is not None:
                    doc = dict(doc, track=track)
            elif doc.get("episode_id"):
                episode = self.store.get(EPISODES, doc["episode_id"])
                if episode is not None:
                    doc = dict(doc, episode=episode)
            data.append(doc)

        return {"data": data, "total": page.total}

    def get_resume(self, item_id: str):
        existing = self._find_entry(item_id)
        return {"position": existing.get("last_position", 0) if existing else 0}

    def clear(self):
        for doc in self.store.list(RECENTLY_PLAYED, filters=[where("user_id", "==", self.user_id)]).documents:
            self.store.delete(RECENTLY_PLAYED, doc["id"])
        return {}


def record_history(request):
    """
    An HTTP-triggered Cloud Function that tracks listening history and resume positions.
    Expects a POST with a JSON body: {"action": "...", "itemId": ..., "position": ...}
    """
    def handle():
        identity = authenticate(request, runtime.get_config())
        body = read_json_body(request)
        return HistoryTracker(runtime.get_document_store(), identity).handle(body)

    return serve(request, handle, methods=("POST",), label="History operation")
