"""Tests for :mod:`introspection_client`."""

from __future__ import annotations

import base64
from contextlib import asynccontextmanager

import pytest
from aiohttp import test_utils, web

from config import IntrospectionConfig
from errors import FetchFailure, GraphQLError, TransportError
from introspection_client import (
    AuthOptions,
    IntrospectionCache,
    IntrospectionClient,
    cache_key,
)

from conftest import FakeClock


def _client(cache: IntrospectionCache | None = None) -> IntrospectionClient:
    config = IntrospectionConfig(
        default_endpoint="http://localhost:5555/graphql",
        cache_duration_s=300.0,
        timeout_s=5.0,
    )
    return IntrospectionClient(config=config, cache=cache)


@asynccontextmanager
async def graphql_endpoint(calls: list[dict], body: object, status: int = 200):
    async def handler(request: web.Request) -> web.Response:
        calls.append({"headers": dict(request.headers), "json": await request.json()})
        return web.json_response(body, status=status)

    app = web.Application()
    app.router.add_post("/graphql", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/graphql"))
    finally:
        await server.close()


def test_auth_identity_prefers_username_then_token() -> None:
    assert AuthOptions(username="ada", bearer_token="tok").identity == "ada"
    assert AuthOptions(bearer_token="tok").identity == "tok"
    assert AuthOptions().identity == "no-auth"


def test_cache_key_ignores_password() -> None:
    first = cache_key("http://api/graphql", AuthOptions(username="ada", password="one"))
    second = cache_key("http://api/graphql", AuthOptions(username="ada", password="two"))

    assert first == second == "http://api/graphql:ada"


def test_headers_use_bearer_token_over_basic_credentials() -> None:
    auth = AuthOptions(username="ada", password="secret", bearer_token="tok")

    assert auth.headers()["Authorization"] == "Bearer tok"


def test_headers_use_basic_credentials_when_complete() -> None:
    expected = base64.b64encode(b"ada:secret").decode("ascii")

    assert AuthOptions(username="ada", password="secret").headers()["Authorization"] == f"Basic {expected}"
    assert "Authorization" not in AuthOptions(username="ada").headers()
    assert "Authorization" not in AuthOptions().headers()


def test_cache_expires_after_duration(fake_clock: FakeClock) -> None:
    cache = IntrospectionCache(60.0, clock=fake_clock)
    cache.set("key", {"__schema": {}})

    fake_clock.advance(59)
    assert cache.get("key") == {"__schema": {}}

    fake_clock.advance(1)
    assert cache.get("key") is None
    assert len(cache) == 1


@pytest.mark.anyio
async def test_fetch_posts_introspection_query_and_caches(library_introspection: dict) -> None:
    calls: list[dict] = []
    client = _client()

    async with graphql_endpoint(calls, {"data": library_introspection}) as url:
        first = await client.fetch_async(url, AuthOptions(username="ada", password="one"))
        second = await client.fetch_async(url, AuthOptions(username="ada", password="two"))

    assert first == library_introspection
    assert second == first
    assert len(calls) == 1
    assert "__schema" in calls[0]["json"]["query"]
    assert calls[0]["headers"]["Content-Type"].startswith("application/json")


@pytest.mark.anyio
async def test_fetch_refreshes_after_cache_window(
    library_introspection: dict, fake_clock: FakeClock
) -> None:
    calls: list[dict] = []
    client = _client(IntrospectionCache(300.0, clock=fake_clock))

    async with graphql_endpoint(calls, {"data": library_introspection}) as url:
        await client.fetch_async(url)
        fake_clock.advance(300.0)
        await client.fetch_async(url)

    assert len(calls) == 2


@pytest.mark.anyio
async def test_fetch_separates_cache_entries_by_identity(library_introspection: dict) -> None:
    calls: list[dict] = []
    client = _client()

    async with graphql_endpoint(calls, {"data": library_introspection}) as url:
        await client.fetch_async(url, AuthOptions(bearer_token="one"))
        await client.fetch_async(url, AuthOptions(bearer_token="two"))

    assert [call["headers"]["Authorization"] for call in calls] == ["Bearer one", "Bearer two"]


@pytest.mark.anyio
async def test_fetch_sends_bearer_token_when_both_credentials_given(library_introspection: dict) -> None:
    calls: list[dict] = []
    client = _client()

    async with graphql_endpoint(calls, {"data": library_introspection}) as url:
        await client.fetch_async(url, AuthOptions(username="ada", password="secret", bearer_token="tok"))

    assert calls[0]["headers"]["Authorization"] == "Bearer tok"


@pytest.mark.anyio
async def test_fetch_raises_transport_error_on_http_failure() -> None:
    calls: list[dict] = []
    client = _client()

    async with graphql_endpoint(calls, {"message": "down"}, status=503) as url:
        with pytest.raises(TransportError) as excinfo:
            await client.fetch_async(url)

    assert excinfo.value.status == 503
    assert "503" in str(excinfo.value)
    assert "Service Unavailable" in str(excinfo.value)
    assert len(client.cache) == 0


@pytest.mark.anyio
async def test_fetch_reports_status_for_undecodable_error_body() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=502, body=b"<html>\xff\xfe Bad gateway</html>", content_type="text/html")

    app = web.Application()
    app.router.add_post("/graphql", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    client = _client()
    try:
        with pytest.raises(TransportError) as excinfo:
            await client.fetch_async(str(server.make_url("/graphql")))
    finally:
        await server.close()

    assert excinfo.value.status == 502
    assert str(excinfo.value) == "Failed to fetch GraphQL schema: HTTP 502: Bad Gateway"


@pytest.mark.anyio
async def test_fetch_raises_graphql_error_when_errors_returned() -> None:
    calls: list[dict] = []
    client = _client()
    body = {"errors": [{"message": "Introspection is disabled"}], "data": None}

    async with graphql_endpoint(calls, body) as url:
        with pytest.raises(GraphQLError) as excinfo:
            await client.fetch_async(url)

    assert "Introspection is disabled" in str(excinfo.value)
    assert len(client.cache) == 0


@pytest.mark.anyio
async def test_fetch_wraps_connection_failures() -> None:
    client = _client()

    with pytest.raises(FetchFailure) as excinfo:
        await client.fetch_async(f"http://127.0.0.1:{test_utils.unused_port()}/graphql")

    assert str(excinfo.value).startswith("Failed to fetch GraphQL schema: ")
    assert excinfo.value.__cause__ is not None


def test_fetch_sync_wrapper_returns_document(library_introspection: dict) -> None:
    class CannedClient(IntrospectionClient):
        async def _post_json(self, endpoint, payload, headers):
            return {"data": library_introspection}

    client = CannedClient(
        config=IntrospectionConfig(default_endpoint="http://x/graphql", cache_duration_s=1.0, timeout_s=None)
    )

    assert client.fetch("http://x/graphql") == library_introspection
