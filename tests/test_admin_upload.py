import pytest
from google.api_core import exceptions as gexc

from musicstream.admin_upload import AdminUploader
from musicstream.auth import Identity
from musicstream.errors import Forbidden, InvalidRequest, NotFound, StorageError
from tests.conftest import auth_header

TRACK = {"title": " Night Drive ", "artist": "Synth Co", "audioFileId": "file-1", "duration": 201}


@pytest.fixture
def admin(documents):
    documents.seed("users", "root", is_admin=True)
    return AdminUploader(documents, Identity("root"))


def test_non_admin_is_forbidden(documents):
    documents.seed("users", "alice", is_admin=False)
    with pytest.raises(Forbidden) as exc:
        AdminUploader(documents, Identity("alice")).require_admin()
    assert exc.value.message == "Admin access required"


def test_unknown_user_is_forbidden(documents):
    with pytest.raises(Forbidden):
        AdminUploader(documents, Identity("ghost")).require_admin()


def test_user_lookup_failure(documents):
    documents.failures[("get", "users")] = gexc.ServiceUnavailable("firestore down")
    with pytest.raises(StorageError) as exc:
        AdminUploader(documents, Identity("root")).require_admin()
    assert exc.value.message == "Failed to verify user permissions"


def test_create_track(admin, documents):
    admin.require_admin()
    track = admin.handle({"contentType": "track", "data": TRACK})["data"]
    assert track["title"] == "Night Drive"
    assert track["source"] == "appwrite"
    assert track["play_count"] == 0
    assert track["album"] is None
    assert documents.get("tracks", track["id"])["audio_file_id"] == "file-1"


@pytest.mark.parametrize("data, message", [
    ({"artist": "A", "audioFileId": "f"}, "Title and artist required"),
    ({"title": "T", "artist": "A"}, "Audio file ID required"),
])
def test_track_validation(admin, data, message):
    with pytest.raises(InvalidRequest) as exc:
        admin.handle({"contentType": "track", "data": data})
    assert exc.value.message == message


def test_create_podcast_and_episode(admin):
    podcast = admin.handle({"contentType": "podcast", "data": {"title": "Pod", "author": "Me"}})["data"]
    episode = admin.handle({
        "contentType": "episode",
        "data": {"podcastId": podcast["id"], "title": "Pilot", "audioFileId": "f-9"},
    })["data"]
    assert episode["podcast_id"] == podcast["id"]
    assert episode["episode_number"] == 1


def test_episode_for_missing_podcast(admin):
    with pytest.raises(NotFound) as exc:
        admin.handle({"contentType": "episode", "data": {"podcastId": "nope", "title": "x", "audioFileId": "f"}})
    assert exc.value.message == "Podcast not found"


def test_invalid_content_type(admin):
    with pytest.raises(InvalidRequest) as exc:
        admin.handle({"contentType": "video", "data": {}})
    assert exc.value.message == "Invalid content type"


def test_database_error(admin, documents):
    documents.failures[("create", "tracks")] = gexc.InternalServerError("boom")
    with pytest.raises(StorageError) as exc:
        admin.handle({"contentType": "track", "data": TRACK})
    assert exc.value.message.startswith("Database error:")


class TestEndpoint:
    def test_admin_creates_podcast(self, client, documents):
        documents.seed("users", "root", is_admin=True)
        resp = client.post("/admin-upload", json={"contentType": "podcast", "data": {"title": "P", "author": "A"}},
                           headers=auth_header("root"))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["title"] == "P"

    def test_non_admin_403(self, client):
        resp = client.post("/admin-upload", json={"contentType": "track", "data": TRACK}, headers=auth_header("alice"))
        assert resp.status_code == 403

    def test_unexpected_error_is_prefixed(self, client, documents):
        documents.seed("users", "root", is_admin=True)
        documents.failures[("create", "podcasts")] = RuntimeError("disk on fire")
        resp = client.post("/admin-upload", json={"contentType": "podcast", "data": {"title": "P", "author": "A"}},
                           headers=auth_header("root"))
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Internal error: disk on fire"
