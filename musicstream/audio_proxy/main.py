# main.py
import logging

import requests
from flask import make_response

from ..errors import FunctionError
from ..http import cors_headers, error_response, serve
from .. import runtime
from .proxy import STREAM_CORS_HEADERS, AudioProxy

logger = logging.getLogger(__name__)


def audio_proxy(request):
    """
    An HTTP-triggered Cloud Function that caches an origin audio file in the
    audio bucket and returns its file id.
    Expects GET ?url=<percent-encoded audio url>.
    """
    def handle():
        proxy = AudioProxy(runtime.get_config(), runtime.get_http_session(), runtime.get_blob_store)
        return proxy.resolve(request.args.get("url"))

    return serve(request, handle, methods=("GET",), label="Proxy request",
                 headers=cors_headers(("GET",)))


def audio_stream(request):
    """
    An HTTP-triggered Cloud Function that streams origin audio to the browser with
    CORS and Range support. Nothing is cached.
    """
    headers = dict(STREAM_CORS_HEADERS)

    if request.method == 'OPTIONS':
        return ('', 204, headers)

    if request.method not in ('GET', 'HEAD'):
        return error_response("Method not allowed", 405, headers)

    try:
        proxy = AudioProxy(runtime.get_config(), runtime.get_http_session())
        result = proxy.stream(request.args.get("url"), request.method, request.headers.get("Range"))
    except FunctionError as e:
        if e.status >= 500:
            logger.error(f"Stream request failed: {e.message}")
        else:
            logger.info(f"Stream request rejected ({e.status}): {e.message}")
        return error_response(e.message, e.status, headers)
    except requests.RequestException as e:
        logger.warning(f"Upstream request failed: {e}")
        return error_response(f"Upstream request failed: {e}", 502, headers)
    except Exception as e:
        logger.exception(f"Stream request failed: {e}")
        return error_response(str(e), 500, headers)

    response = make_response(result.body, result.status)
    # Set after the body so upstream Content-Length wins over the computed one.
    response.headers.update(result.headers)
    return response
