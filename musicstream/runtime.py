# runtime.py
"""Process-wide configuration and clients, created on first use and reused across requests."""
import functools
import logging
import os

import requests

from .blobstore import BlobStore
from .config import FunctionConfig
from .documents import DocumentStore

_LOGGING_CONFIGURED = False


def configure_logging():
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGING_CONFIGURED = True


@functools.lru_cache(maxsize=None)
def get_config() -> FunctionConfig:
    return FunctionConfig.from_env()


@functools.lru_cache(maxsize=None)
def get_document_store() -> DocumentStore:
    return DocumentStore.from_config(get_config())


@functools.lru_cache(maxsize=None)
def get_blob_store() -> BlobStore:
    return BlobStore.from_config(get_config())


@functools.lru_cache(maxsize=None)
def get_http_session() -> requests.Session:
    # No retry adapter: a failed origin fetch is reported to the caller as-is.
    return requests.Session()


def reset():
    """Drop the cached config and clients (used by tests)."""
    for fn in (get_config, get_document_store, get_blob_store, get_http_session):
        fn.cache_clear()
