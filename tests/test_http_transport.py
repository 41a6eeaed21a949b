from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from pyarcsync._transport import ArcGISTransport
from pyarcsync.credentials import Credential
from pyarcsync.exceptions import ArcSyncRemoteError, ArcSyncTransportError

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

CREDENTIAL = Credential(
    token="abc",
    expires_at=datetime(2030, 1, 1, tzinfo=UTC),
    referer="https://portal.example.com",
)


@asynccontextmanager
async def _serve(handler: Handler) -> AsyncIterator[tuple[ArcGISTransport, str]]:
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler)
    async with test_utils.TestServer(app) as server, aiohttp.ClientSession() as session:
        yield ArcGISTransport(session), str(server.make_url("/arcgis/rest/services/x/FeatureServer/0"))


@pytest.mark.asyncio
async def test_get_sends_token_with_referer_and_json_format() -> None:
    seen: dict[str, Any] = {}

    async def handler(request: web.Request) -> web.Response:
        seen["headers"] = request.headers
        seen["query"] = dict(request.query)
        return web.json_response({"features": []})

    async with _serve(handler) as (transport, url):
        body = await transport.get_json(f"{url}/query", {"where": "1=1", "resultOffset": 0}, CREDENTIAL)

    assert body == {"features": []}
    assert seen["headers"]["X-Esri-Authorization"] == "Bearer abc"
    assert seen["headers"]["Referer"] == "https://portal.example.com"
    assert seen["query"] == {"f": "json", "where": "1=1", "resultOffset": "0"}


@pytest.mark.asyncio
async def test_post_sends_form_and_caller_format_wins() -> None:
    seen: dict[str, Any] = {}

    async def handler(request: web.Request) -> web.Response:
        seen["method"] = request.method
        seen["form"] = dict(await request.post())
        seen["headers"] = request.headers
        return web.json_response({"addResults": [{"success": True, "objectId": 1}]})

    async with _serve(handler) as (transport, url):
        await transport.post_form(f"{url}/addFeatures", {"features": "[]", "f": "pjson"}, CREDENTIAL)

    assert seen["method"] == "POST"
    assert seen["form"] == {"f": "pjson", "features": "[]"}
    assert seen["headers"]["X-Esri-Authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_anonymous_request_carries_no_token_headers() -> None:
    seen: dict[str, Any] = {}

    async def handler(request: web.Request) -> web.Response:
        seen["headers"] = request.headers
        return web.json_response({})

    async with _serve(handler) as (transport, url):
        await transport.get_json(url, {}, Credential.anonymous())

    assert "X-Esri-Authorization" not in seen["headers"]
    assert "Referer" not in seen["headers"]


@pytest.mark.asyncio
async def test_non_2xx_status_raises_transport_error() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=500, text="boom")

    async with _serve(handler) as (transport, url):
        with pytest.raises(ArcSyncTransportError) as exc_info:
            await transport.get_json(url, {})

    assert exc_info.value.status_code == 500
    assert exc_info.value.url == url
    assert not isinstance(exc_info.value, ArcSyncRemoteError)


@pytest.mark.asyncio
async def test_non_json_body_raises_transport_error() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text="<html>login</html>", content_type="text/html")

    async with _serve(handler) as (transport, url):
        with pytest.raises(ArcSyncTransportError, match="Invalid JSON"):
            await transport.get_json(url, {})


@pytest.mark.asyncio
async def test_error_payload_with_200_raises_remote_error() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response({"error": {"code": 498, "message": "Invalid token.", "details": []}})

    async with _serve(handler) as (transport, url):
        with pytest.raises(ArcSyncRemoteError) as exc_info:
            await transport.post_form(url, {}, CREDENTIAL)

    assert exc_info.value.code == 498
    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response({})

    async with _serve(handler) as (_, url):
        pass

    async with aiohttp.ClientSession() as session:
        transport = ArcGISTransport(session)
        with pytest.raises(ArcSyncTransportError) as exc_info:
            await transport.get_json(url, {})

    assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)
