"""Resolving and vetting URLs taken from scraped markup.

Product, pagination and image links all come from the shop's HTML. They are
resolved to absolute URLs here, and only URLs on the shop's own domains are
ever requested.
"""

import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit

from partscrape.config import ALLOWED_DOMAINS, BASE_URL

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "validate_url",
    "absolute_url",
    "is_safe_url",
]

WEB_SCHEMES = ("http", "https")

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")

# Traversal and script injection, checked on the lowercased URL
_REJECTED_FRAGMENTS = ("../", "%2e%2e", "<script", "javascript:")


class URLValidationError(ValueError):
    """A scraped URL that must not be fetched."""


def sanitize_url(url: Optional[str]) -> str:
    """Drop surrounding whitespace, control characters and encoded NULs."""
    if not url:
        return ""
    return _CONTROL_CHARS_RE.sub("", url.strip()).replace("%00", "")


def validate_url(url: str, allowed_domains: Optional[Iterable[str]] = None) -> str:
    """Return the sanitized URL if it may be fetched.

    ``allowed_domains`` defaults to the shop's hosts; an empty collection
    accepts any host.

    Raises:
        URLValidationError: For non-web schemes, missing or foreign hosts and
            traversal or injection fragments
    """
    cleaned = sanitize_url(url)
    if not cleaned:
        raise URLValidationError("URL is empty")

    try:
        parts = urlsplit(cleaned)
        host = (parts.hostname or "").lower()
    except ValueError as e:
        raise URLValidationError(f"Unparseable URL {cleaned!r}: {e}") from e

    if parts.scheme.lower() not in WEB_SCHEMES:
        raise URLValidationError(f"Not a web URL (scheme {parts.scheme or 'missing'!r}): {cleaned}")
    if not host:
        raise URLValidationError(f"URL has no host: {cleaned}")

    domains = ALLOWED_DOMAINS if allowed_domains is None else frozenset(allowed_domains)
    if domains and host not in domains:
        raise URLValidationError(f"Host {host!r} is outside the shop ({', '.join(sorted(domains))})")

    lowered = cleaned.lower()
    for fragment in _REJECTED_FRAGMENTS:
        if fragment in lowered:
            raise URLValidationError(f"URL contains {fragment!r}: {cleaned}")

    return cleaned


def absolute_url(href: Optional[str], base: str = BASE_URL) -> Optional[str]:
    """Resolve ``href`` against ``base``; None unless the result is http(s)."""
    href = sanitize_url(href)
    if not href:
        return None
    try:
        resolved = urljoin(base, href)
        scheme = urlsplit(resolved).scheme.lower()
    except ValueError:
        return None
    return resolved if scheme in WEB_SCHEMES else None


def is_safe_url(url: str) -> bool:
    try:
        validate_url(url)
    except URLValidationError:
        return False
    return True
