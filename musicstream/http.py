# http.py
"""
Request/response plumbing shared by the HTTP-triggered functions.

Every function answers with the Cloud Functions tuple ``(body, status, headers)``
and always attaches CORS headers, including on errors and preflight requests.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from flask import jsonify

from .errors import FunctionError, InvalidRequest

logger = logging.getLogger(__name__)


def cors_headers(methods: Iterable[str], allow_headers: str = "Content-Type, Authorization",
                 expose_headers: Optional[str] = None) -> Dict[str, str]:
    headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': ", ".join(list(methods) + ["OPTIONS"]),
        'Access-Control-Allow-Headers': allow_headers,
    }
    if expose_headers:
        headers['Access-Control-Expose-Headers'] = expose_headers
    return headers


def error_response(message: str, status: int, headers: Dict[str, str]):
    return jsonify({"success": False, "error": message}), status, headers


def read_json_body(request) -> Dict[str, Any]:
    """Parse the JSON object body. Query-string values are merged in on GET."""
    body: Dict[str, Any] = {}
    raw = request.get_data(cache=True)
    if raw and raw.strip():
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            raise InvalidRequest("Invalid JSON body")

    if request.method == "GET" and request.args:
        merged = request.args.to_dict()
        merged.update(body)
        body = merged
    return body


def as_int(value, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise InvalidRequest(f"Expected a number, got: {value!r}")


def as_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def serve(request, handler: Callable[[], Dict[str, Any]], methods=("POST",), label: str = "Request",
          error_prefix: str = "", headers: Optional[Dict[str, str]] = None):
    """
    Run ``handler`` for an HTTP request and wrap its result.

    The handler returns the payload fields of a successful response; ``success``
    is added here. FunctionError subclasses become JSON errors with their own
    status; anything else is logged and reported as a 500.
    """
    headers = headers or cors_headers(methods)

    if request.method == 'OPTIONS':
        return ('', 204, headers)

    if request.method not in methods:
        return error_response("Method not allowed", 405, headers)

    try:
        payload = handler()
    except FunctionError as e:
        if e.status >= 500:
            logger.error(f"{label} failed: {e.message}")
        else:
            logger.info(f"{label} rejected ({e.status}): {e.message}")
        return error_response(e.message, e.status, headers)
    except Exception as e:
        logger.exception(f"{label} failed: {e}")
        return error_response(f"{error_prefix}{e}", 500, headers)

    body = {"success": True}
    body.update(payload or {})
    return jsonify(body), 200, headers
