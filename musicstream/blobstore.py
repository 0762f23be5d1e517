# blobstore.py
import logging
from dataclasses import dataclass
from typing import Optional

from google.api_core import exceptions as gexc
from google.cloud import storage

from .config import FunctionConfig
from .errors import CacheWriteFailed, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedBlob:
    key: str
    content_type: Optional[str] = None
    size: Optional[int] = None
    public_url: Optional[str] = None


def _to_cached(blob) -> CachedBlob:
    return CachedBlob(key=blob.name, content_type=blob.content_type, size=blob.size,
                      public_url=blob.public_url)


class BlobStore:
    """Object storage for cached audio, one GCS bucket addressed by key."""

    def __init__(self, client: storage.Client, bucket_name: str):
        self._client = client
        self.bucket_name = bucket_name
        self._bucket = client.bucket(bucket_name)

    @classmethod
    def from_config(cls, config: FunctionConfig) -> "BlobStore":
        client = storage.Client(project=config.project_id, client_options=config.client_options() or None)
        return cls(client, config.audio_bucket)

    def lookup(self, key: str) -> Optional[CachedBlob]:
        """Return the stored blob for ``key``, or None when nothing is cached yet."""
        try:
            blob = self._bucket.get_blob(key)
        except gexc.NotFound:
            return None
        except gexc.GoogleAPICallError as e:
            logger.error(f"Blob lookup failed for key {key} in {self.bucket_name}: {e}")
            raise StorageError(f"Storage lookup failed: {e}")
        if blob is None:
            return None
        return _to_cached(blob)

    def put(self, key: str, data: bytes, content_type: str, public: bool = True) -> CachedBlob:
        """
        Create ``key`` with ``data``. The write only succeeds if the object does
        not exist yet; losing that race to a concurrent writer is not an error,
        the object is already there.
        """
        blob = self._bucket.blob(key)
        try:
            blob.upload_from_string(
                data,
                content_type=content_type,
                predefined_acl="publicRead" if public else None,
                if_generation_match=0,
            )
        except gexc.PreconditionFailed:
            logger.info(f"Blob {key} was written concurrently; keeping the existing object")
            return CachedBlob(key=key, content_type=content_type, size=len(data))
        except gexc.GoogleAPICallError as e:
            logger.error(f"Upload failed for key {key} in {self.bucket_name}: {e}")
            raise CacheWriteFailed(key, e)
        return CachedBlob(key=key, content_type=content_type, size=len(data), public_url=blob.public_url)
