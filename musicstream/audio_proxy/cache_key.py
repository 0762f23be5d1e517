# cache_key.py
"""
URL validation and cache key derivation for the audio proxy.

A URL that embeds a known provider track id maps to ``<provider>_<id>`` so that
incidental query-string changes (tracking params, signed tokens) still land on
the same cached object. Anything else is keyed by the MD5 of the decoded URL.
"""
import hashlib
import re
from typing import Iterable, Optional, Tuple
from urllib.parse import ParseResult, unquote, urlparse

from ..errors import ForbiddenOrigin, MalformedUrl, MissingParameter

# (namespace, provider domain, (url part, id pattern) pairs tried in order)
PROVIDER_PATTERNS = (
    ("jamendo", "jamendo.com", (
        ("path", re.compile(r"/tracks?/(\d+)(?:/|$)")),
        ("query", re.compile(r"(?:^|&)(?:trackid|id)=(\d+)(?:&|$)")),
    )),
)


def host_matches(hostname: str, domain: str) -> bool:
    """True when ``hostname`` is ``domain`` or a subdomain of it."""
    hostname = hostname.lower().rstrip(".")
    domain = domain.lower()
    return hostname == domain or hostname.endswith("." + domain)


def is_allowed_host(hostname: Optional[str], allowed: Iterable[str]) -> bool:
    if not hostname:
        return False
    return any(host_matches(hostname, domain) for domain in allowed)


def decode_source_url(raw: Optional[str]) -> Tuple[str, ParseResult]:
    """Percent-decode the ``url`` parameter and parse it as an absolute http(s) URL."""
    if raw is None or not raw.strip():
        raise MissingParameter("Missing url parameter")

    try:
        decoded = unquote(raw.strip(), errors="strict")
        parsed = urlparse(decoded)
        hostname = parsed.hostname
    except ValueError as e:
        raise MalformedUrl(f"Invalid url parameter: {e}")

    if parsed.scheme not in ("http", "https") or not hostname:
        raise MalformedUrl("Invalid url parameter")
    return decoded, parsed


def validate_source_url(raw: Optional[str], allowed: Iterable[str]) -> Tuple[str, ParseResult]:
    decoded, parsed = decode_source_url(raw)
    if not is_allowed_host(parsed.hostname, allowed):
        raise ForbiddenOrigin("Unauthorized domain")
    return decoded, parsed


def provider_track_id(parsed: ParseResult) -> Optional[Tuple[str, str]]:
    """Return (namespace, track id) when the URL carries a recognisable provider id."""
    for namespace, domain, patterns in PROVIDER_PATTERNS:
        if not host_matches(parsed.hostname or "", domain):
            continue
        for part, pattern in patterns:
            m = pattern.search(getattr(parsed, part))
            if m:
                return namespace, m.group(1)
    return None


def derive_cache_key(decoded_url: str, parsed: Optional[ParseResult] = None) -> str:
    if parsed is None:
        parsed = urlparse(decoded_url)
    match = provider_track_id(parsed)
    if match:
        namespace, track_id = match
        return f"{namespace}_{track_id}"
    return hashlib.md5(decoded_url.encode("utf-8")).hexdigest()
