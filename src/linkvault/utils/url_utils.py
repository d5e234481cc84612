"""URL normalization and parsing utilities."""

from urllib.parse import urljoin, urlparse


class URLValidationError(Exception):
    """URL validation error."""

    pass


def ensure_scheme(url: str) -> str:
    """Prefix ``http://`` when the URL has no http(s) scheme.

    Example:
        "example.com" -> "http://example.com"
    """
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"http://{url}"


def validate_http_url(url: str) -> None:
    """Validate URL is an absolute http(s) URL with a host.

    Raises:
        URLValidationError: If the URL cannot be fetched as a web page
    """
    if not url or any(ch.isspace() for ch in url):
        raise URLValidationError(f"Invalid URL: {url!r}")

    try:
        parsed = urlparse(url)
        # Accessing port validates it
        parsed.port
    except ValueError as e:
        raise URLValidationError(f"Invalid URL: {url!r}") from e

    if parsed.scheme not in ("http", "https"):
        raise URLValidationError(
            f"URL scheme '{parsed.scheme}' not allowed. Only http:// and https:// are permitted."
        )

    if not parsed.hostname:
        raise URLValidationError(f"URL has no host: {url!r}")


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_against_origin(href: str, page_url: str) -> str:
    """Resolve a possibly relative href against the page origin.

    Example:
        ("/static/icon.png", "https://example.com/a/b") -> "https://example.com/static/icon.png"
    """
    return urljoin(origin_of(page_url) + "/", href)
