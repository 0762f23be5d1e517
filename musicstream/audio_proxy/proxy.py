# proxy.py
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests

from ..blobstore import BlobStore
from ..config import FunctionConfig
from ..errors import UpstreamFetchFailed
from .cache_key import derive_cache_key, validate_source_url

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"
STREAM_CACHE_CONTROL = "public, max-age=86400"
PASSTHROUGH_HEADERS = ("Content-Length", "Content-Range", "Accept-Ranges")

STREAM_CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, HEAD, OPTIONS',
    'Access-Control-Allow-Headers': 'Range, Content-Type, Content-Length, Content-Range, Accept-Ranges',
    'Access-Control-Expose-Headers': 'Content-Length, Content-Range, Accept-Ranges',
}


@dataclass
class StreamResult:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def _upstream_ok(status: int) -> bool:
    return 200 <= status < 300 or status == 206


class AudioProxy:
    """
    Serves origin audio either by caching it in the blob store (``resolve``) or
    by passing the bytes straight through with CORS headers (``stream``).
    """

    def __init__(self, config: FunctionConfig, session: requests.Session,
                 blob_store: Optional[Callable[[], BlobStore]] = None):
        self.config = config
        self.session = session
        # Resolved on first use, so rejected requests never touch storage.
        self._blob_store = blob_store

    @property
    def blobs(self) -> BlobStore:
        return self._blob_store()

    def resolve(self, raw_url: Optional[str]) -> Dict[str, str]:
        decoded, parsed = validate_source_url(raw_url, self.config.allowed_origins)
        key = derive_cache_key(decoded, parsed)

        blobs = self.blobs

        # 1. Check if the file is already cached
        if blobs.lookup(key) is not None:
            logger.info(f"Cache hit for: {key}")
            return {"fileId": key}
        logger.info(f"Cache miss for: {key}. Fetching from {parsed.hostname}...")

        # 2. Fetch from the origin
        response = self.session.get(
            decoded,
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.fetch_timeout,
        )
        if not _upstream_ok(response.status_code):
            logger.warning(f"Upstream fetch failed for {parsed.hostname} (key {key}): HTTP {response.status_code}")
            raise UpstreamFetchFailed(response.status_code)

        # 3. Store it under the cache key
        data = response.content
        logger.info(f"Uploading {len(data)} bytes to bucket {blobs.bucket_name} as {key}...")
        blobs.put(key, data, AUDIO_CONTENT_TYPE, public=True)
        logger.info(f"Successfully cached track: {key}")

        return {"fileId": key}

    def stream(self, raw_url: Optional[str], method: str = "GET", range_header: Optional[str] = None) -> StreamResult:
        decoded, parsed = validate_source_url(raw_url, self.config.allowed_origins)

        # Uncompressed, so the forwarded Content-Length matches the body.
        upstream_headers = {"User-Agent": self.config.user_agent, "Accept-Encoding": "identity"}
        if range_header:
            upstream_headers["Range"] = range_header

        upstream_method = "HEAD" if method == "HEAD" else "GET"
        logger.info(f"Streaming {upstream_method} {parsed.hostname}{parsed.path} range={range_header or '-'}")
        response = self.session.request(
            upstream_method,
            decoded,
            headers=upstream_headers,
            timeout=self.config.fetch_timeout,
        )

        headers = dict(STREAM_CORS_HEADERS)
        headers["Content-Type"] = response.headers.get("Content-Type") or AUDIO_CONTENT_TYPE
        headers["Cache-Control"] = STREAM_CACHE_CONTROL
        # Origins may compress anyway; requests decodes the body, so its length no longer applies.
        encoded = response.headers.get("Content-Encoding", "identity").lower() != "identity"
        for name in PASSTHROUGH_HEADERS:
            value = response.headers.get(name)
            if value and not (encoded and name == "Content-Length"):
                headers[name] = value

        if not _upstream_ok(response.status_code):
            logger.warning(f"Upstream returned HTTP {response.status_code} for {parsed.hostname}; passing it through")

        body = b"" if upstream_method == "HEAD" else response.content
        return StreamResult(status=response.status_code, headers=headers, body=body)
