"""Tests for page metadata lookup."""

import httpx
import pytest
from fastapi.testclient import TestClient

from linkvault import api
from linkvault.core.metadata import (
    FetchTimeoutError,
    InvalidURLError,
    MetadataFetcher,
    NetworkError,
    UpstreamError,
    extract_metadata,
    normalize_url,
)

PAGE = """
<html>
  <head>
    <title> Example Page </title>
    <meta name="description" content="An example page">
    <meta property="og:title" content="OG Title">
    <link rel="stylesheet" href="/style.css">
    <link rel="icon" href="/static/icon.png">
  </head>
  <body></body>
</html>
"""


def html_transport(html=PAGE, status=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, text=html, headers={"Content-Type": "text/html"})

    return httpx.MockTransport(handler)


class TestNormalizeUrl:
    def test_adds_scheme(self):
        assert normalize_url("example.com") == "http://example.com"

    def test_keeps_https(self):
        assert normalize_url("https://example.com/a") == "https://example.com/a"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        with pytest.raises(InvalidURLError, match="URL parameter is required"):
            normalize_url(raw)

    @pytest.mark.parametrize("raw", ["http://exa mple.com", "http://", "http://example.com:99999"])
    def test_malformed(self, raw):
        with pytest.raises(InvalidURLError) as exc_info:
            normalize_url(raw)
        assert exc_info.value.status_code == 400


class TestExtractMetadata:
    """Test HTML metadata extraction."""

    def test_full_page(self):
        metadata = extract_metadata(PAGE, "https://example.com/articles/1")

        assert metadata.title == "Example Page"
        assert metadata.description == "An example page"
        assert metadata.favicon == "https://example.com/static/icon.png"

    def test_og_fallbacks(self):
        html = """
        <head>
          <meta property="og:title" content="OG Title">
          <meta property="og:description" content="OG description">
        </head>
        """
        metadata = extract_metadata(html, "https://example.com")

        assert metadata.title == "OG Title"
        assert metadata.description == "OG description"

    def test_shortcut_icon(self):
        html = '<head><link rel="shortcut icon" href="fav.ico"></head>'

        metadata = extract_metadata(html, "https://example.com/deep/page")

        assert metadata.favicon == "https://example.com/fav.ico"

    def test_absolute_icon_kept(self):
        html = '<head><link rel="icon" href="https://cdn.example.net/i.png"></head>'

        metadata = extract_metadata(html, "https://example.com")

        assert metadata.favicon == "https://cdn.example.net/i.png"

    def test_default_favicon(self):
        metadata = extract_metadata("<html></html>", "http://example.com:8080/x")

        assert metadata.title is None
        assert metadata.description is None
        assert metadata.favicon == "http://example.com:8080/favicon.ico"


class TestMetadataFetcher:
    """Test fetching through a mock transport."""

    @pytest.mark.asyncio
    async def test_fetch_adds_scheme(self):
        seen = []
        fetcher = MetadataFetcher(transport=html_transport(seen=seen))

        metadata = await fetcher.fetch("example.com")

        assert seen[0].url.scheme == "http"
        assert seen[0].url.host == "example.com"
        assert "Mozilla" in seen[0].headers["User-Agent"]
        assert metadata.favicon == "http://example.com/static/icon.png"

    @pytest.mark.asyncio
    async def test_upstream_status_passed_through(self):
        fetcher = MetadataFetcher(transport=html_transport(status=404))

        with pytest.raises(UpstreamError) as exc_info:
            await fetcher.fetch("https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Failed to fetch URL: Not Found"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = MetadataFetcher(transport=httpx.MockTransport(handler))

        with pytest.raises(FetchTimeoutError) as exc_info:
            await fetcher.fetch("https://slow.example.com")

        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        fetcher = MetadataFetcher(transport=httpx.MockTransport(handler))

        with pytest.raises(NetworkError) as exc_info:
            await fetcher.fetch("https://down.example.com")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message.startswith("Internal server error")


@pytest.fixture
def client():
    app = api.create_app(use_lifespan=False)
    with TestClient(app) as test_client:
        yield test_client


class TestMetadataEndpoint:
    def test_success_omits_absent_fields(self, client, monkeypatch):
        html = "<head><title>Only Title</title></head>"
        monkeypatch.setattr(api, "metadata_fetcher", MetadataFetcher(transport=html_transport(html)))

        response = client.get("/api/metadata", params={"url": "example.com"})

        assert response.status_code == 200
        assert response.json() == {
            "title": "Only Title",
            "favicon": "http://example.com/favicon.ico",
        }

    def test_missing_url(self, client, monkeypatch):
        monkeypatch.setattr(api, "metadata_fetcher", MetadataFetcher(transport=html_transport()))

        response = client.get("/api/metadata")

        assert response.status_code == 400
        assert response.json() == {"error": "URL parameter is required"}

    def test_upstream_error(self, client, monkeypatch):
        monkeypatch.setattr(
            api, "metadata_fetcher", MetadataFetcher(transport=html_transport(status=503))
        )

        response = client.get("/api/metadata", params={"url": "https://example.com"})

        assert response.status_code == 503
        assert response.json()["error"].startswith("Failed to fetch URL")
