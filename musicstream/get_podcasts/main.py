# main.py
import logging
from typing import Any, Dict

from .. import runtime
from ..documents import DocumentStore, where
from ..errors import NotFound
from ..http import as_bool, as_int, clamp, read_json_body, serve

logger = logging.getLogger(__name__)

PODCASTS = "podcasts"
EPISODES = "episodes"
MAX_EPISODES = 50


class PodcastCatalog:
    def __init__(self, store: DocumentStore):
        self.store = store

    def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        podcast_id = body.get("podcastId")
        if podcast_id:
            return self.get_podcast(podcast_id, as_bool(body.get("includeEpisodes")))

        category = body.get("category")
        return self.list_podcasts(
            limit=clamp(as_int(body.get("limit"), 25), 1, 100),
            offset=max(0, as_int(body.get("offset"), 0)),
            category=category.strip() if isinstance(category, str) and category.strip() else None,
        )

    def get_podcast(self, podcast_id: str, include_episodes: bool = False):
        logger.info(f"Fetching podcast: {podcast_id}")
        podcast = self.store.get(PODCASTS, podcast_id)
        if podcast is None:
            raise NotFound("Podcast not found")

        episodes = []
        if include_episodes:
            episodes = self.store.list(
                EPISODES,
                filters=[where("podcast_id", "==", podcast_id)],
                order_by=[("episode_number", "desc")],
                limit=MAX_EPISODES,
            ).documents

        return {"data": dict(podcast, episodes=episodes)}

    def list_podcasts(self, limit: int, offset: int, category=None):
        filters = [where("category", "==", category)] if category else []
        page = self.store.list(PODCASTS, filters=filters, order_by=[("created_at", "desc")],
                               limit=limit, offset=offset)
        logger.info(f"Found {page.total} podcasts")
        return {
            "data": page.documents,
            "total": page.total,
            "hasMore": offset + len(page.documents) < page.total,
        }


def get_podcasts(request):
    """
    An HTTP-triggered Cloud Function that lists podcasts, or returns one podcast
    with its episodes when "podcastId" is given.
    """
    def handle():
        body = read_json_body(request)
        return PodcastCatalog(runtime.get_document_store()).handle(body)

    return serve(request, handle, methods=("GET", "POST"), label="Podcast fetch")
