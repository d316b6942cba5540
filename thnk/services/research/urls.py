"""URL canonicalization for untrusted source candidates."""

from __future__ import annotations

from urllib.parse import unquote_plus, urlsplit, urlunsplit

from thnk.services.research.errors import InvalidUrlError

ALLOWED_SCHEMES = frozenset({"http", "https"})
_TRACKING_KEYS = frozenset({"fbclid"})
_TRACKING_PREFIXES = ("utm_",)
_TRAILING_SEPARATORS = "?#&"


def _is_tracking_param(key: str) -> bool:
    lowered = key.lower()
    return lowered in _TRACKING_KEYS or lowered.startswith(_TRACKING_PREFIXES)


def _strip_tracking(query: str) -> str:
    """Drop tracking segments, leaving every other segment byte-for-byte."""
    kept = []
    for segment in query.split("&"):
        if not segment:
            continue
        key = unquote_plus(segment.partition("=")[0])
        if not _is_tracking_param(key):
            kept.append(segment)
    return "&".join(kept)


def canonicalize_url(raw: str) -> str:
    """Strip tracking parameters and empty separators, rejecting non-http(s) URLs.

    Re-canonicalizing a canonical URL returns it unchanged.
    """
    if not isinstance(raw, str):
        raise InvalidUrlError(f"URL must be a string, got {type(raw).__name__}")
    candidate = raw.strip().rstrip(_TRAILING_SEPARATORS)
    if not candidate or any(char.isspace() for char in candidate):
        raise InvalidUrlError(f"Malformed URL: {raw!r}")
    try:
        parsed = urlsplit(candidate)
        hostname = parsed.hostname
        _ = parsed.port  # raises ValueError for out-of-range ports
    except ValueError as exc:
        raise InvalidUrlError(f"Malformed URL: {raw!r}") from exc

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES or not hostname:
        raise InvalidUrlError(f"Not an absolute http(s) URL: {raw!r}")

    netloc = parsed.netloc
    if "@" not in netloc:
        netloc = netloc.lower()
    canonical = urlunsplit((scheme, netloc, parsed.path, _strip_tracking(parsed.query), parsed.fragment))
    return canonical.rstrip(_TRAILING_SEPARATORS)


def extract_domain(url: str) -> str:
    """Return the lower-cased host without a leading ``www.``."""
    host = (urlsplit(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host
