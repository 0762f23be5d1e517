# errors.py
"""
Error types raised by the functions. Each one knows the HTTP status it maps to,
so the entry points can turn any of them into a JSON error response.
"""
from typing import Optional


class FunctionError(Exception):
    """Base class for errors that are reported to the caller as-is."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class InvalidRequest(FunctionError):
    status = 400


class MissingParameter(InvalidRequest):
    pass


class MalformedUrl(InvalidRequest):
    pass


class Unauthorized(FunctionError):
    status = 401


class Forbidden(FunctionError):
    status = 403


class ForbiddenOrigin(Forbidden):
    pass


class NotFound(FunctionError):
    status = 404


class Conflict(FunctionError):
    status = 409


class UpstreamFetchFailed(FunctionError):
    """The origin media host answered with a non-success status."""

    def __init__(self, upstream_status: int):
        super().__init__(f"Upstream error: {upstream_status}")
        self.upstream_status = upstream_status


class StorageError(FunctionError):
    status = 500


class CacheWriteFailed(StorageError):
    def __init__(self, key: str, cause: Exception):
        super().__init__(str(cause) or f"Failed to cache {key}")
        self.key = key
        self.cause = cause


class ConfigError(FunctionError):
    status = 500
