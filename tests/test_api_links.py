"""Integration tests for link API endpoints."""

import asyncio
import json
import tempfile
from datetime import date
from pathlib import Path

import httpx
import pytest
import yaml
from fastapi.testclient import TestClient

from linkvault.config import ConfigManager
from linkvault.core.metadata import MetadataFetcher
from linkvault.core.record_store import FileRecordStore, StoreError
from linkvault.core.tag_suggester import TagSuggester

TOKEN = "test-token-123"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def test_config_dir(monkeypatch):
    """Create temporary config directory."""
    monkeypatch.delenv("AI_API_KEY", raising=False)
    with tempfile.TemporaryDirectory() as temp_dir:
        config_dir = Path(temp_dir) / ".linkvault"
        data_dir = config_dir / "data"
        data_dir.mkdir(parents=True)

        (config_dir / ".env").write_text(f"API_TOKEN={TOKEN}\n")

        config_data = {
            "store_backend": "file",
            "data_path": str(data_dir),
            "local_owner_id": "local",
            "autofill_metadata": False,
        }
        (config_dir / "config.yaml").write_text(yaml.safe_dump(config_data))

        yield config_dir


@pytest.fixture
def client(test_config_dir):
    """Create test client with a file-backed store."""
    from linkvault import api

    real_cm = ConfigManager(test_config_dir)
    app_config = real_cm.load_app_config()
    env_settings = real_cm.load_env_settings()

    store = FileRecordStore(Path(app_config.data_path))
    asyncio.run(store.initialize())

    api.config_manager = real_cm
    api.configure(app_config, env_settings, store)

    app = api.create_app(use_lifespan=False)
    with TestClient(app) as test_client:
        yield test_client


def add(client, **fields):
    response = client.post("/api/v1/links", json=fields, headers=AUTH)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/api/v1/links")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_token(self, client):
        response = client.get("/api/v1/links", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_non_ascii_token(self, client):
        response = client.get(
            "/api/v1/links", headers={"Authorization": "Bearer sécret".encode("latin-1")}
        )

        assert response.status_code == 401


class TestLinkCrud:
    """Test create, list, update and delete."""

    def test_create_link(self, client):
        link = add(client, url="https://example.com", title="Example", tags="a, b")

        assert link["id"]
        assert link["user_id"] == "local"
        assert link["tags"] == ["a", "b"]
        assert link["created_at"]

    def test_create_rejects_numeric_tags(self, client):
        response = client.post(
            "/api/v1/links", json={"url": "https://x.com", "tags": 5}, headers=AUTH
        )

        assert response.status_code == 422

    def test_create_requires_url(self, client):
        response = client.post("/api/v1/links", json={"url": "  "}, headers=AUTH)

        assert response.status_code == 422
        assert "URL is required." in response.text

    def test_list_newest_first_with_views(self, client):
        add(client, url="https://x.com", tags=["go"], category="Lang")
        add(client, url="https://y.com", tags=["rust"], category="Lang")

        body = client.get("/api/v1/links", headers=AUTH).json()

        assert [link["url"] for link in body["links"]] == ["https://y.com", "https://x.com"]
        assert body["categories"] == ["Lang"]
        assert body["tags"] == ["go", "rust"]
        assert body["total"] == 2
        assert body["filter"] == {"kind": "all"}

    def test_tag_filter(self, client):
        add(client, url="https://x.com", tags=["go"])
        add(client, url="https://y.com", tags=["rust"])

        body = client.get("/api/v1/links", params={"tag": "go"}, headers=AUTH).json()

        assert [link["url"] for link in body["links"]] == ["https://x.com"]
        assert body["filter"] == {"kind": "tag", "tag": "go"}

    def test_search_overrides_tag(self, client):
        add(client, url="https://x.com", tags=["go"])
        add(client, url="https://y.com", tags=["rust"])

        body = client.get(
            "/api/v1/links", params={"q": "y.com", "tag": "go"}, headers=AUTH
        ).json()

        assert [link["url"] for link in body["links"]] == ["https://y.com"]
        assert body["filter"]["kind"] == "search"
        assert body["tags"] == ["go", "rust"]

    def test_update_link(self, client):
        link = add(client, url="https://x.com", title="Old", tags=["go"])

        response = client.put(
            f"/api/v1/links/{link['id']}",
            json={"url": "https://x.com", "title": "New"},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "New"
        assert response.json()["tags"] == []

    def test_update_missing(self, client):
        response = client.put(
            "/api/v1/links/missing", json={"url": "https://x.com"}, headers=AUTH
        )
        assert response.status_code == 404

    def test_delete_link(self, client):
        link = add(client, url="https://x.com")

        response = client.delete(f"/api/v1/links/{link['id']}", headers=AUTH)

        assert response.status_code == 204
        assert client.get("/api/v1/links", headers=AUTH).json()["links"] == []

    def test_delete_missing(self, client):
        assert client.delete("/api/v1/links/missing", headers=AUTH).status_code == 404

    def test_store_failure(self, client, monkeypatch):
        from linkvault import api

        async def failing_create(session, data):
            raise StoreError("database unavailable")

        monkeypatch.setattr(api.record_store, "create", failing_create)

        response = client.post("/api/v1/links", json={"url": "https://x.com"}, headers=AUTH)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to add link. database unavailable"


class TestAutofill:
    def test_title_and_favicon_filled(self, client, monkeypatch):
        from linkvault import api

        html = '<head><title>Fetched</title><link rel="icon" href="/i.png"></head>'
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text=html))
        monkeypatch.setattr(api.runtime_config, "autofill_metadata", True)
        monkeypatch.setattr(api, "metadata_fetcher", MetadataFetcher(transport=transport))

        link = add(client, url="https://example.com/page")

        assert link["title"] == "Fetched"
        assert link["favicon_url"] == "https://example.com/i.png"

    def test_fetch_failure_ignored(self, client, monkeypatch):
        from linkvault import api

        transport = httpx.MockTransport(lambda r: httpx.Response(500))
        monkeypatch.setattr(api.runtime_config, "autofill_metadata", True)
        monkeypatch.setattr(api, "metadata_fetcher", MetadataFetcher(transport=transport))

        link = add(client, url="https://example.com/page", title="Mine")

        assert link["title"] == "Mine"
        assert link["favicon_url"] is None


class TestExportImport:
    """Test JSON export and import endpoints."""

    def test_export_empty(self, client):
        response = client.get("/api/v1/links/export", headers=AUTH)
        assert response.status_code == 204

    def test_export(self, client):
        add(client, url="https://x.com", tags=["go"])

        response = client.get("/api/v1/links/export", headers=AUTH)

        assert response.status_code == 200
        assert response.headers["X-Export-Count"] == "1"
        expected_name = f"link-vault-export-{date.today().isoformat()}.json"
        assert expected_name in response.headers["Content-Disposition"]
        rows = response.json()
        assert rows[0]["url"] == "https://x.com"
        assert "id" not in rows[0]

    def test_import(self, client):
        content = json.dumps([{"url": "https://a.com", "tags": ["A", "", " b "]}])

        response = client.post(
            "/api/v1/links/import",
            content=content,
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"imported": 1, "message": "Successfully imported 1 links!"}
        body = client.get("/api/v1/links", headers=AUTH).json()
        assert body["links"][0]["tags"] == ["A", "b"]

    def test_import_wrong_content_type(self, client):
        response = client.post(
            "/api/v1/links/import",
            content="[]",
            headers={**AUTH, "Content-Type": "text/plain"},
        )

        assert response.status_code == 415
        assert "Please select a valid JSON file." in response.json()["detail"]

    def test_import_invalid_document(self, client):
        response = client.post(
            "/api/v1/links/import",
            content=json.dumps({"url": "https://a.com"}),
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Import failed:")

    def test_import_missing_url_inserts_nothing(self, client):
        content = json.dumps([{"url": "https://a.com"}, {"title": "no url"}])

        response = client.post(
            "/api/v1/links/import",
            content=content,
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "index 1" in response.json()["detail"]
        assert client.get("/api/v1/links", headers=AUTH).json()["total"] == 0

    def test_import_empty(self, client):
        response = client.post(
            "/api/v1/links/import",
            content="[]",
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.json() == {"imported": 0, "message": "Import file contains no links."}


class TestSuggestTags:
    def test_requires_text(self, client):
        response = client.post("/api/v1/suggest-tags", json={}, headers=AUTH)
        assert response.status_code == 400

    def test_unconfigured_returns_empty(self, client):
        response = client.post(
            "/api/v1/suggest-tags", json={"title": "Rust book"}, headers=AUTH
        )

        assert response.status_code == 200
        assert response.json() == {"tags": []}

    def test_suggestions(self, client, monkeypatch):
        from linkvault import api

        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(
                200, json={"choices": [{"message": {"content": "Rust, Books"}}]}
            )

        config = api.runtime_config.model_copy(update={"ai_endpoint": "https://ai.example.com"})
        env_settings = api.runtime_env_settings.model_copy(update={"ai_api_key": "k"})
        monkeypatch.setattr(
            api,
            "tag_suggester",
            TagSuggester(config, env_settings, transport=httpx.MockTransport(handler)),
        )

        response = client.post(
            "/api/v1/suggest-tags",
            json={"url": "https://doc.rust-lang.org/book", "title": "The Book", "description": "Learn Rust"},
            headers=AUTH,
        )

        assert response.json() == {"tags": ["rust", "books"]}
        assert '"Learn Rust"' in seen[0]["messages"][1]["content"]


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/v1/health").json()

        assert body["status"] == "healthy"
        assert body["store_backend"] == "file"
        assert body["store_ready"] is True
        assert body["load_error_count"] == 0
        assert body["ai_suggestions_configured"] is False

    def test_root(self, client):
        assert client.get("/").json()["name"] == "LinkVault API"
