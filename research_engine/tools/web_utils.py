from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    if any(ch.isspace() for ch in url):
        return False
    try:
        result = urlparse(url)
        result.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return result.scheme in ("http", "https") and bool(result.hostname)


def extract_domain(url: str) -> str:
    """Hostname of a URL, or the URL itself when it cannot be parsed."""
    try:
        return urlparse(url).hostname or url
    except ValueError:
        return url
