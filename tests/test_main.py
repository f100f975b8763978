import pytest
from httpx import ASGITransport, AsyncClient

from conftest import WATCH_URL, FailingResolver, StubResolver
from redirector.config.settings import Config
from redirector.main import create_app

QUEST_UA = "UnityPlayer/2019.4.31f1 (UnityWebRequest/1.0, libcurl/7.75.0-DEV)"


def config_with(**sections) -> Config:
    config = Config()
    updates = {
        name: getattr(config, name).model_copy(update=values)
        for name, values in sections.items()
    }
    return config.model_copy(update=updates)


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
def app(config, resolver):
    return create_app(config, resolver)


@pytest.mark.asyncio
async def test_health_check(app):
    """Test public health endpoint"""
    async with client_for(app) as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["cache_entries"] == 0
    assert body["lock_mode"] == "per_key"


@pytest.mark.asyncio
async def test_redirects_to_resolved_url(app, resolver):
    async with client_for(app) as ac:
        response = await ac.get(
            "/www.youtube.com/watch?v=abc123",
            headers={"User-Agent": QUEST_UA},
        )
    assert response.status_code == 302
    assert response.headers["location"] == resolver.info.formats[0].direct_url
    assert response.headers["x-request-id"]
    assert resolver.calls == [(WATCH_URL, [("User-Agent", QUEST_UA)])]


@pytest.mark.asyncio
async def test_explicit_scheme_in_path(app, resolver):
    async with client_for(app) as ac:
        response = await ac.get("/https://youtu.be/abc123", headers={"User-Agent": QUEST_UA})
    assert response.status_code == 302
    assert resolver.calls[0][0] == "https://youtu.be/abc123"


@pytest.mark.asyncio
async def test_head_request_redirects(app):
    async with client_for(app) as ac:
        response = await ac.head("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
    assert response.status_code == 302


@pytest.mark.asyncio
async def test_cached_redirect_counts_in_health(app, resolver):
    async with client_for(app) as ac:
        await ac.get("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
        await ac.get("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
        health = await ac.get("/health")
    assert len(resolver.calls) == 1
    assert health.json()["cache_entries"] == 1


@pytest.mark.asyncio
async def test_untrusted_host_is_not_found(app, resolver):
    async with client_for(app) as ac:
        response = await ac.get("/example.com/video.mp4")
    assert response.status_code == 404
    assert response.text == "Not Found"
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_empty_path_is_bad_request(app):
    async with client_for(app) as ac:
        response = await ac.get("/")
    assert response.status_code == 400
    assert response.text == "Bad Request"


@pytest.mark.asyncio
async def test_windows_client_redirected_to_source_page(app, resolver):
    async with client_for(app) as ac:
        response = await ac.get(
            "/www.youtube.com/watch?v=abc123",
            headers={"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"},
        )
    assert response.status_code == 302
    assert response.headers["location"] == WATCH_URL
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_resolver_failure_redirects_to_source_page(config):
    app = create_app(config, FailingResolver())
    async with client_for(app) as ac:
        response = await ac.get("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
    assert response.status_code == 302
    assert response.headers["location"] == WATCH_URL


@pytest.mark.asyncio
async def test_resolver_failure_bad_gateway_policy():
    app = create_app(config_with(policy={"upstream_failure": "bad_gateway"}), FailingResolver())
    async with client_for(app) as ac:
        response = await ac.get("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_url_root_prefix():
    resolver = StubResolver()
    app = create_app(config_with(server={"url_root": "/vr/"}), resolver)
    async with client_for(app) as ac:
        redirected = await ac.get("/vr/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
        outside = await ac.get("/www.youtube.com/watch?v=abc123", headers={"User-Agent": QUEST_UA})
    assert redirected.status_code == 302
    assert outside.status_code == 404
    assert len(resolver.calls) == 1
