# main.py
import logging
from typing import Any, Dict

from google.api_core import exceptions as gexc

from .. import runtime
from ..auth import Identity, authenticate
from ..documents import DocumentStore
from ..errors import Forbidden, InvalidRequest, NotFound, StorageError
from ..http import read_json_body, serve

logger = logging.getLogger(__name__)

USERS = "users"
TRACKS = "tracks"
PODCASTS = "podcasts"
EPISODES = "episodes"


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional(value):
    return _text(value) or None


class AdminUploader:
    """Creates catalogue entries (tracks, podcasts, episodes) for admin users."""

    def __init__(self, store: DocumentStore, identity: Identity):
        self.store = store
        self.user_id = identity.user_id

    def require_admin(self):
        try:
            user = self.store.get(USERS, self.user_id)
        except gexc.GoogleAPICallError as e:
            logger.error(f"User Verification Failed: {e}")
            raise StorageError("Failed to verify user permissions")
        if not user or not user.get("is_admin"):
            logger.error(f"Access Denied: User {self.user_id} is not an admin")
            raise Forbidden("Admin access required")

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        content_type = body.get("contentType")
        data = body.get("data")
        if not isinstance(data, dict):
            data = {}
        logger.info(f"Starting Admin Upload: Type={content_type}, User={self.user_id}")

        builder = {
            "track": self.track_document,
            "podcast": self.podcast_document,
            "episode": self.episode_document,
        }.get(content_type)
        if builder is None:
            raise InvalidRequest("Invalid content type")

        collection, document = builder(data)
        try:
            created = self.store.create(collection, document)
        except gexc.GoogleAPICallError as e:
            logger.error(f"DB Creation Failed ({content_type}): {e}")
            raise StorageError(f"Database error: {e}")
        logger.info(f"Success: Created {content_type} {created['id']}")
        return {"data": created}

    def track_document(self, data):
        logger.info(f"Track Payload: Title=\"{data.get('title')}\", Artist=\"{data.get('artist')}\", "
                    f"AudioID={data.get('audioFileId')}, CoverID={data.get('coverImageId') or 'NULL'}")
        if not _text(data.get("title")) or not _text(data.get("artist")):
            raise InvalidRequest("Title and artist required")
        if not data.get("audioFileId"):
            raise InvalidRequest("Audio file ID required")

        return TRACKS, {
            "title": _text(data["title"]),
            "artist": _text(data["artist"]),
            "album": _optional(data.get("album")),
            "genre": _optional(data.get("genre")),
            "duration": data.get("duration") or 0,
            "audio_file_id": data["audioFileId"],
            "audio_filename": data.get("audioFilename") or None,
            "cover_image_id": data.get("coverImageId") or None,
            "cover_filename": data.get("coverFilename") or None,
            "source": "appwrite",
            "play_count": 0,
        }

    def podcast_document(self, data):
        logger.info(f"Podcast Payload: Title=\"{data.get('title')}\", Author=\"{data.get('author')}\"")
        if not _text(data.get("title")) or not _text(data.get("author")):
            raise InvalidRequest("Title and author required")

        return PODCASTS, {
            "title": _text(data["title"]),
            "author": _text(data["author"]),
            "description": _optional(data.get("description")),
            "category": _optional(data.get("category")),
            "cover_image_id": data.get("coverImageId") or None,
        }

    def episode_document(self, data):
        if not data.get("podcastId") or not _text(data.get("title")):
            raise InvalidRequest("Podcast ID and title required")
        if not data.get("audioFileId"):
            raise InvalidRequest("Audio file ID required")
        if self.store.get(PODCASTS, data["podcastId"]) is None:
            raise NotFound("Podcast not found")

        return EPISODES, {
            "podcast_id": data["podcastId"],
            "title": _text(data["title"]),
            "description": _optional(data.get("description")),
            "duration": data.get("duration") or 0,
            "audio_file_id": data["audioFileId"],
            "episode_number": data.get("episodeNumber") or 1,
        }


def admin_upload(request):
    """
    An HTTP-triggered Cloud Function that lets admins add tracks, podcasts and episodes.
    Expects a POST with a JSON body: {"contentType": "track|podcast|episode", "data": {...}}
    """
    def handle():
        identity = authenticate(request, runtime.get_config())
        uploader = AdminUploader(runtime.get_document_store(), identity)
        uploader.require_admin()
        return uploader.handle(read_json_body(request))

    return serve(request, handle, methods=("POST",), label="Admin upload", error_prefix="Internal error: ")

