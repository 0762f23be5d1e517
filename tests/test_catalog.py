import pytest

from musicstream.get_podcasts import PodcastCatalog
from musicstream.get_tracks import TrackCatalog
from musicstream.errors import NotFound
from tests.conftest import auth_header


@pytest.fixture
def podcasts(documents):
    documents.seed("podcasts", "p1", title="Tech Talk", category="tech", created_at="2026-01-01T00:00:00+00:00")
    documents.seed("podcasts", "p2", title="Jazz Hour", category="music", created_at="2026-01-02T00:00:00+00:00")
    documents.seed("podcasts", "p3", title="Code Review", category="tech", created_at="2026-01-03T00:00:00+00:00")
    for n in range(1, 4):
        documents.seed("episodes", f"e{n}", podcast_id="p1", episode_number=n, title=f"Ep {n}")
    return PodcastCatalog(documents)


class TestPodcasts:
    def test_list_newest_first(self, podcasts):
        result = podcasts.handle({})
        assert [p["id"] for p in result["data"]] == ["p3", "p2", "p1"]
        assert result["total"] == 3
        assert result["hasMore"] is False

    def test_list_by_category_paged(self, podcasts):
        result = podcasts.handle({"category": "tech", "limit": 1})
        assert [p["id"] for p in result["data"]] == ["p3"]
        assert result["total"] == 2
        assert result["hasMore"] is True

    def test_single_with_episodes(self, podcasts):
        data = podcasts.handle({"podcastId": "p1", "includeEpisodes": "true"})["data"]
        assert data["title"] == "Tech Talk"
        assert [e["episode_number"] for e in data["episodes"]] == [3, 2, 1]

    def test_single_without_episodes(self, podcasts):
        assert podcasts.handle({"podcastId": "p1"})["data"]["episodes"] == []

    def test_missing_podcast(self, podcasts):
        with pytest.raises(NotFound) as exc:
            podcasts.handle({"podcastId": "nope"})
        assert exc.value.message == "Podcast not found"

    def test_endpoint_needs_no_auth(self, client, podcasts):
        resp = client.get("/get-podcasts?category=music")
        assert resp.status_code == 200
        assert [p["id"] for p in resp.get_json()["data"]] == ["p2"]

        resp = client.post("/get-podcasts", json={"podcastId": "missing"})
        assert resp.status_code == 404


@pytest.fixture
def tracks(documents):
    documents.seed("tracks", "t1", title="Blue Moon", genre="jazz", play_count=5, created_at="2026-01-01T00:00:00+00:00")
    documents.seed("tracks", "t2", title="Bluebird", genre="rock", play_count=50, created_at="2026-01-02T00:00:00+00:00")
    documents.seed("tracks", "t3", title="Red Sky", genre="jazz", play_count=10, created_at="2026-01-03T00:00:00+00:00")
    return TrackCatalog(documents)


class TestTracks:
    def test_default_sort_is_newest(self, tracks):
        result = tracks.handle({})
        assert [t["id"] for t in result["data"]] == ["t3", "t2", "t1"]
        assert (result["limit"], result["offset"]) == (25, 0)

    def test_genre_and_play_count_sort(self, tracks):
        result = tracks.handle({"genre": "jazz", "sortBy": "playCount", "sortOrder": "desc"})
        assert [t["id"] for t in result["data"]] == ["t3", "t1"]

    def test_title_prefix_search(self, tracks):
        result = tracks.handle({"search": "Blue"})
        assert {t["id"] for t in result["data"]} == {"t1", "t2"}
        assert result["total"] == 2

    def test_single_character_search_is_ignored(self, tracks):
        assert tracks.handle({"search": "B"})["total"] == 3

    def test_paging(self, tracks):
        result = tracks.handle({"limit": 2, "offset": 1})
        assert [t["id"] for t in result["data"]] == ["t2", "t1"]
        assert result["hasMore"] is False

    def test_limit_is_clamped(self, tracks):
        assert tracks.handle({"limit": 500})["limit"] == 100
        assert tracks.handle({"limit": 0})["limit"] == 1

    def test_endpoint_requires_authentication(self, client, tracks):
        resp = client.get("/get-tracks")
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "error": "Authentication required"}

    def test_endpoint_query_args(self, client, tracks):
        resp = client.get("/get-tracks?genre=rock", headers=auth_header("alice"))
        assert resp.status_code == 200
        assert [t["id"] for t in resp.get_json()["data"]] == ["t2"]
