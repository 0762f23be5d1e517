# app.py
"""
Serves every function from one Flask app, one route each. Used for local runs
and gunicorn; in Cloud Functions each entry point is deployed on its own.
"""
import os

from flask import Flask, request

from .admin_upload import admin_upload
from .audio_proxy import audio_proxy, audio_stream
from .get_podcasts import get_podcasts
from .get_tracks import get_tracks
from .manage_favorites import manage_favorites
from .manage_playlists import manage_playlists
from .record_history import record_history
from .runtime import configure_logging
from .search import search

ALL_METHODS = ["GET", "HEAD", "POST", "OPTIONS"]

ROUTES = {
    "/audio-proxy": audio_proxy,
    "/audio-stream": audio_stream,
    "/manage-playlists": manage_playlists,
    "/manage-favorites": manage_favorites,
    "/record-history": record_history,
    "/get-podcasts": get_podcasts,
    "/get-tracks": get_tracks,
    "/admin-upload": admin_upload,
    "/search": search,
}


def create_app() -> Flask:
    configure_logging()
    # The Flask object must be named 'app' for Gunicorn to find it.
    flask_app = Flask(__name__)

    for path, function in ROUTES.items():
        # Each function checks the method itself, so every route accepts all of them.
        flask_app.add_url_rule(
            path,
            endpoint=function.__name__,
            view_func=lambda function=function: function(request),
            methods=ALL_METHODS,
            provide_automatic_options=False,
        )
    return flask_app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
