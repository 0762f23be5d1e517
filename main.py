# main.py
# Cloud Functions entry points. Deploy each one with --entry-point <name>, e.g.
#   gcloud functions deploy audio-proxy --runtime python312 --trigger-http --entry-point audio_proxy
from musicstream.admin_upload import admin_upload
from musicstream.audio_proxy import audio_proxy, audio_stream
from musicstream.get_podcasts import get_podcasts
from musicstream.get_tracks import get_tracks
from musicstream.manage_favorites import manage_favorites
from musicstream.manage_playlists import manage_playlists
from musicstream.record_history import record_history
from musicstream.runtime import configure_logging
from musicstream.search import search

configure_logging()

__all__ = [
    "admin_upload",
    "audio_proxy",
    "audio_stream",
    "get_podcasts",
    "get_tracks",
    "manage_favorites",
    "manage_playlists",
    "record_history",
    "search",
]
