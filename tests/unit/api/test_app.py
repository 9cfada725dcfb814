"""Tests for the assembled proxy application."""

from collections.abc import Callable

import httpx
import pytest

from jsonpath_filter import __version__
from jsonpath_filter.api.app import create_app
from jsonpath_filter.config.filter import FilterSettings
from jsonpath_filter.config.settings import Settings
from jsonpath_filter.config.upstream import UpstreamSettings


UPSTREAM_URL = "http://upstream.test"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_settings(isolated_environment):
    def _settings(**filter_values) -> Settings:
        return Settings(
            upstream=UpstreamSettings(base_url=UPSTREAM_URL),
            filter=FilterSettings(**filter_values),
        )

    return _settings


@pytest.fixture
def upstream_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def proxy_app(make_settings, upstream_requests):
    """Build the app against an in-memory upstream."""

    def _app(handler: Handler, **filter_values):
        def recording_handler(request: httpx.Request) -> httpx.Response:
            upstream_requests.append(request)
            return handler(request)

        upstream_client = httpx.AsyncClient(
            transport=httpx.MockTransport(recording_handler)
        )
        return create_app(make_settings(**filter_values), http_client=upstream_client)

    return _app


def json_upstream(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        headers=[
            ("content-type", "application/json"),
            ("set-cookie", "session=abc"),
            ("set-cookie", "theme=dark"),
        ],
        content=b'{"a":1,"b":{"c":2}}',
    )


async def test_proxied_response_is_filtered(proxy_app, asgi_client) -> None:
    app = proxy_app(json_upstream)

    async with asgi_client(app) as client:
        response = await client.get("/items", headers={"X-JsonPath": "$.b"})

    assert response.status_code == 200
    assert response.json() == {"c": 2}
    assert response.headers.get_list("set-cookie") == ["session=abc", "theme=dark"]


async def test_selector_header_is_not_forwarded(
    proxy_app, asgi_client, upstream_requests
) -> None:
    app = proxy_app(json_upstream)

    async with asgi_client(app) as client:
        await client.get(
            "/items?page=2",
            headers={"X-JsonPath": "$.b", "Authorization": "Bearer t"},
        )

    (forwarded,) = upstream_requests
    assert str(forwarded.url) == f"{UPSTREAM_URL}/items?page=2"
    assert "x-jsonpath" not in forwarded.headers
    assert forwarded.headers["authorization"] == "Bearer t"
    assert forwarded.headers["accept-encoding"] == "identity"


async def test_selector_query_param_is_not_forwarded(
    proxy_app, asgi_client, upstream_requests
) -> None:
    app = proxy_app(json_upstream, selector="query_param")

    async with asgi_client(app) as client:
        response = await client.get(
            "/items", params={"page": "2", "jsonpath_filter": "$.b"}
        )

    assert response.json() == {"c": 2}
    (forwarded,) = upstream_requests
    assert forwarded.url.params.get("jsonpath_filter") is None
    assert forwarded.url.params["page"] == "2"


async def test_request_body_is_forwarded(
    proxy_app, asgi_client, upstream_requests
) -> None:
    app = proxy_app(json_upstream)

    async with asgi_client(app) as client:
        await client.post(
            "/items",
            content=b'{"name":"x"}',
            headers={"Content-Type": "application/json"},
        )

    (forwarded,) = upstream_requests
    assert forwarded.method == "POST"
    assert forwarded.content == b'{"name":"x"}'


async def test_upstream_text_passes_through(proxy_app, asgi_client) -> None:
    def text_upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"content-type": "text/plain"}, content=b"plain"
        )

    app = proxy_app(text_upstream)

    async with asgi_client(app) as client:
        response = await client.get("/", headers={"X-JsonPath": "$.b"})

    assert response.content == b"plain"
    assert response.headers["content-type"] == "text/plain"


async def test_unreachable_upstream_is_502(proxy_app, asgi_client) -> None:
    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    app = proxy_app(refused)

    async with asgi_client(app) as client:
        response = await client.get("/items")

    assert response.status_code == 502
    assert response.json()["error"]["type"] == "upstream_connection_error"


async def test_upstream_timeout_is_504(proxy_app, asgi_client) -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    app = proxy_app(slow)

    async with asgi_client(app) as client:
        response = await client.get("/items")

    assert response.status_code == 504
    assert response.json()["error"]["type"] == "upstream_timeout_error"


async def test_health_is_not_filtered(proxy_app, asgi_client) -> None:
    app = proxy_app(json_upstream)

    async with asgi_client(app) as client:
        response = await client.get("/health", headers={"X-JsonPath": "$.missing"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pass"
    assert data["version"] == __version__
    assert data["checks"]["upstream"]["configured"] is True


async def test_app_without_upstream_has_no_proxy_route(
    isolated_environment, asgi_client
) -> None:
    app = create_app(Settings())

    async with asgi_client(app) as client:
        health = await client.get("/health")
        missing = await client.get("/items")

    assert health.json()["checks"]["upstream"]["configured"] is False
    assert missing.status_code == 404
