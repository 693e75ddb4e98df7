"""URL canonicalization for cache keys.

Cosmetic variants of the same address (http vs https, host case, ``www.``,
trailing slash, fragment) collapse onto one key so that user-supplied
spellings of a documentation root share a cache entry.
"""

import logging
import re
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_EMBEDDED_URL_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*://[^/?#\s]+")
_SAFE_LABEL_RE = re.compile(r"[a-z0-9][a-z0-9._\-]*")


def normalize_url(url_input: str) -> str:
    """Return the canonical form of ``url_input``, or the input itself if it cannot be parsed."""
    url_str = url_input.strip()
    if not _SCHEME_RE.match(url_str):
        url_str = "https://" + url_str

    try:
        parts = urlsplit(url_str)
        hostname = parts.hostname
        if not hostname or any(ch.isspace() for ch in hostname):
            raise ValueError(f"no usable host in {url_str!r}")
        port = parts.port
    except ValueError as e:
        logger.error("URL normalize failed | input=%s | %s", url_input[:200], str(e)[:200])
        return url_input

    while hostname.startswith("www.") and len(hostname) > 4:
        hostname = hostname[4:]
    if ":" in hostname:
        hostname = f"[{hostname}]"

    netloc = hostname if port is None else f"{hostname}:{port}"

    # Repeated trailing slashes collapse too, otherwise "/a//" would need two passes.
    path = parts.path.rstrip("/")
    query = f"?{parts.query}" if parts.query else ""

    # Both web schemes serve the same documentation, so they share one key.
    return f"https://{netloc}{path}{query}"


def origin_label(key: str) -> str | None:
    """Host of the first URL embedded in ``key``, if it is safe to use as a directory name.

    Works for plain URLs as well as composite keys such as
    ``discovered_pages:https://docs.example.com:limit20``.
    """
    match = _EMBEDDED_URL_RE.search(key)
    if not match:
        return None
    try:
        hostname = urlsplit(match.group(0)).hostname
    except ValueError:
        return None
    if not hostname or not _SAFE_LABEL_RE.fullmatch(hostname):
        return None
    return hostname
