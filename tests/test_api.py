"""Tests for API endpoints."""

import pytest
from httpx import AsyncClient, ASGITransport

from shortlink.database.memory import InMemoryLinkStore
from shortlink.errors import StoreUnavailableError
from shortlink.service import LinkService
from web_app import create_app


class DownStore(InMemoryLinkStore):
    """A store whose server is unreachable."""

    async def find_by_token(self, short_token):
        raise StoreUnavailableError("connection refused")

    async def find_by_long_url(self, long_url):
        raise StoreUnavailableError("connection refused")

    async def health_check(self):
        return False


@pytest.fixture
async def down_client(cache, config, logger):
    service = LinkService(store=DownStore(logger=logger), cache=cache, logger=logger)
    app = create_app(service_instance=service, config=config, logger=logger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


async def _shorten(client, url, **extra):
    response = await client.post("/api/shorten", json={"url": url, **extra})
    assert response.status_code in (200, 201), response.text
    return response.json()


@pytest.mark.asyncio
class TestShorten:
    """Test POST /api/shorten."""

    async def test_shorten_url(self, client, sample_urls):
        response = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "created"
        assert data["long_url"] == sample_urls[0]
        assert data["short_url"] == f"http://testserver/{data['short_token']}"
        assert data["expires_at"] is None

    async def test_shorten_duplicate(self, client, sample_urls):
        first = await _shorten(client, sample_urls[0])

        response = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert response.status_code == 200
        assert response.json()["status"] == "duplicate"
        assert response.json()["short_token"] == first["short_token"]

    async def test_short_url_uses_forwarded_headers(self, client, sample_urls):
        response = await client.post(
            "/api/shorten",
            json={"url": sample_urls[0]},
            headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "sho.rt"},
        )

        data = response.json()
        assert data["short_url"] == f"https://sho.rt/{data['short_token']}"

    @pytest.mark.parametrize("url", ["not-a-url", "ftp://example.com", "https://", ""])
    async def test_shorten_invalid_url(self, client, url):
        response = await client.post("/api/shorten", json={"url": url})

        assert response.status_code == 422

    async def test_shorten_missing_url(self, client):
        response = await client.post("/api/shorten", json={})

        assert response.status_code == 422

    async def test_shorten_with_expiry(self, client, sample_urls):
        data = await _shorten(client, sample_urls[0], expires_at="2030-01-01T00:00:00Z")

        assert data["expires_at"].startswith("2030-01-01T00:00:00")

    async def test_shorten_expiry_in_past(self, client, sample_urls):
        response = await client.post(
            "/api/shorten",
            json={"url": sample_urls[0], "expires_at": "2020-01-01T00:00:00Z"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    async def test_store_unavailable(self, down_client, sample_urls):
        response = await down_client.post("/api/shorten", json={"url": sample_urls[0]})

        assert response.status_code == 503
        assert response.json()["error"] == "Store unavailable"


@pytest.mark.asyncio
class TestLinks:
    """Test /api/urls endpoints."""

    async def test_get_url_info(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0], description="docs"))["short_token"]

        response = await client.get(f"/api/urls/{token}", params={"redirect": "false"})

        assert response.status_code == 200
        data = response.json()
        assert data["short_token"] == token
        assert data["long_url"] == sample_urls[0]
        assert data["description"] == "docs"
        assert data["is_active"] is True

    async def test_get_url_info_not_found(self, client):
        response = await client.get("/api/urls/nonexistent")

        assert response.status_code == 404

    async def test_get_url_redirect(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.get(f"/api/urls/{token}", params={"redirect": "true"})

        assert response.status_code == 302
        assert response.headers["location"] == sample_urls[0]

    async def test_get_url_redirects_by_default(self, client, service, store, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.get(f"/api/urls/{token}")

        assert response.status_code == 302
        assert response.headers["location"] == sample_urls[0]

        await client.get(f"/api/urls/{token}", params={"redirect": "false"})
        await service.wait_for_pending()
        assert (await store.find_by_token(token)).access_count == 1

    async def test_list_urls(self, client, sample_urls):
        for url in sample_urls:
            await _shorten(client, url)

        response = await client.get("/api/urls")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == len(sample_urls)
        assert [link["long_url"] for link in data["links"]] == sample_urls

    async def test_deactivate(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]
        assert (await client.get(f"/{token}")).status_code == 302

        response = await client.patch(f"/api/urls/{token}", json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert (await client.get(f"/{token}")).status_code == 404
        assert (await client.get(f"/api/urls/{token}")).status_code == 404

    async def test_patch_description_only(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0], description="old"))["short_token"]

        response = await client.patch(f"/api/urls/{token}", json={"description": "new"})

        assert response.status_code == 200
        assert response.json()["description"] == "new"
        assert response.json()["is_active"] is True

    async def test_patch_empty_body(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.patch(f"/api/urls/{token}", json={})

        assert response.status_code == 400

    async def test_patch_null_is_active(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.patch(f"/api/urls/{token}", json={"is_active": None})

        assert response.status_code == 422

    async def test_patch_not_found(self, client):
        response = await client.patch("/api/urls/nope123", json={"is_active": False})

        assert response.status_code == 404
        assert response.json()["error"] == "Not found"

    async def test_reactivate_conflict(self, client, sample_urls):
        old = (await _shorten(client, sample_urls[0]))["short_token"]
        await client.patch(f"/api/urls/{old}", json={"is_active": False})
        await _shorten(client, sample_urls[0])

        response = await client.patch(f"/api/urls/{old}", json={"is_active": True})

        assert response.status_code == 400

    async def test_delete(self, client, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.delete(f"/api/urls/{token}")
        assert response.status_code == 204

        assert (await client.delete(f"/api/urls/{token}")).status_code == 404
        assert (await client.get(f"/{token}")).status_code == 404


@pytest.mark.asyncio
class TestRedirect:
    """Test GET /{short_token}."""

    async def test_redirect(self, client, service, store, sample_urls):
        token = (await _shorten(client, sample_urls[0]))["short_token"]

        response = await client.get(f"/{token}")

        assert response.status_code == 302
        assert response.headers["location"] == sample_urls[0]

        await service.wait_for_pending()
        assert (await store.find_by_token(token)).access_count == 1

    async def test_redirect_not_found(self, client):
        response = await client.get("/nonexistent")

        assert response.status_code == 404

    async def test_redirect_malformed_token(self, client):
        response = await client.get("/bad%20token")

        assert response.status_code == 404


@pytest.mark.asyncio
class TestOperational:
    """Test stats and health endpoints."""

    async def test_statistics(self, client, sample_urls):
        for url in sample_urls:
            await _shorten(client, url)

        response = await client.get("/api/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_urls"] == 3
        assert data["active_urls"] == 3
        assert data["total_accesses"] == 0
        assert len(data["top_domains"]) == 3
        assert data["database"] == "memory"
        assert data["cache"] == "memory"

    async def test_health_check(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["cache"] == "healthy"

    async def test_lb_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_unhealthy(self, down_client):
        assert (await down_client.get("/health")).status_code == 503
        assert (await down_client.get("/api/health")).json()["status"] == "unhealthy"

    async def test_resolve_store_unavailable(self, down_client):
        response = await down_client.get("/abc1234")

        assert response.status_code == 503
