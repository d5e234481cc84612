"""Page metadata lookup (title, description, favicon)."""

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel

from ..utils.url_utils import (
    URLValidationError,
    ensure_scheme,
    origin_of,
    resolve_against_origin,
    validate_http_url,
)

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class NetworkError(Exception):
    """Outbound call failed; ``status_code`` is the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidURLError(NetworkError):
    """Requested URL cannot be fetched."""

    def __init__(self, message: str = "Invalid URL provided"):
        super().__init__(message, status_code=400)


class UpstreamError(NetworkError):
    """Remote page answered with an error status."""

    pass


class FetchTimeoutError(NetworkError):
    """Remote page did not answer in time."""

    def __init__(self, message: str = "Request timed out while fetching URL metadata"):
        super().__init__(message, status_code=504)


class PageMetadata(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    favicon: Optional[str] = None


def normalize_url(raw_url: Optional[str]) -> str:
    """Add a scheme when missing and validate the result.

    Raises:
        InvalidURLError: If the URL is missing or malformed
    """
    if not raw_url or not raw_url.strip():
        raise InvalidURLError("URL parameter is required")

    url = ensure_scheme(raw_url)
    try:
        validate_http_url(url)
    except URLValidationError as e:
        raise InvalidURLError() from e
    return url


def extract_metadata(html: str, page_url: str) -> PageMetadata:
    """Read title, description and favicon from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")

    title = None
    if soup.title is not None:
        title = soup.title.get_text().strip() or None
    if not title:
        title = _meta_content(soup, property="og:title")

    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )

    favicon_href = _icon_href(soup, "icon") or _icon_href(soup, "shortcut icon")
    if favicon_href:
        favicon = resolve_against_origin(favicon_href, page_url)
    else:
        favicon = f"{origin_of(page_url)}/favicon.ico"

    return PageMetadata(title=title, description=description, favicon=favicon)


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def _icon_href(soup: BeautifulSoup, rel: str) -> Optional[str]:
    for tag in soup.find_all("link", href=True):
        rel_value = tag.get("rel") or []
        if isinstance(rel_value, str):
            rel_value = rel_value.split()
        if " ".join(rel_value).lower() == rel:
            return tag["href"]
    return None


class MetadataFetcher:
    """Fetches a page once and extracts its metadata. No retries."""

    def __init__(self, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize metadata fetcher.

        Args:
            timeout: Whole-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, raw_url: Optional[str]) -> PageMetadata:
        """Fetch metadata for a URL, adding ``http://`` when no scheme is given.

        Raises:
            InvalidURLError: Malformed URL (400)
            UpstreamError: Remote returned an error status (that status)
            FetchTimeoutError: Remote did not answer in time (504)
            NetworkError: Any other failure (500)
        """
        url = normalize_url(raw_url)
        logger.info(f"Fetching metadata for: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=BROWSER_HEADERS,
                transport=self.transport,
            ) as client:
                response = await client.get(url)

                if not response.is_success:
                    logger.error(
                        f"Failed to fetch URL {url}: {response.status_code} {response.reason_phrase}"
                    )
                    raise UpstreamError(
                        f"Failed to fetch URL: {response.reason_phrase}",
                        status_code=response.status_code,
                    )

                html = response.text
        except NetworkError:
            raise
        except httpx.TimeoutException as e:
            logger.warning(f"Timed out fetching metadata for {url}")
            raise FetchTimeoutError() from e
        except Exception as e:
            logger.error(f"Error fetching metadata for {url}: {e}")
            raise NetworkError(f"Internal server error: {e}") from e

        try:
            metadata = extract_metadata(html, url)
        except Exception as e:
            logger.error(f"Error parsing metadata for {url}: {e}")
            raise NetworkError(f"Internal server error: {e}") from e

        logger.debug(f"Extracted metadata: {metadata}")
        return metadata
