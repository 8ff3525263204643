"""URL validation and normalization helpers."""

from urllib.parse import urlsplit


def is_valid_url(url: object) -> bool:
    """Check that a value is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def get_domain(url: str) -> str | None:
    """Return the hostname of a URL, or None if the URL is not valid."""
    if not is_valid_url(url):
        return None
    return urlsplit(url).hostname


def normalize_domain(host: str) -> str:
    """Lowercase a hostname and strip a leading 'www.'."""
    host = host.strip().lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host
