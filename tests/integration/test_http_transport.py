"""HttpTransport against an in-process aiohttp server."""
from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import AsyncIterator

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from marketplace_chat.application.exceptions import AuthError, TransportError
from marketplace_chat.infrastructure.http.client import HttpTransport


def _api() -> web.Application:
    app = web.Application()

    async def echo(request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        return web.json_response({"data": {"auth": request.headers.get("Authorization"), "body": body}})

    async def stringly(_request: web.Request) -> web.Response:
        return web.json_response({"data": json.dumps({"conversations": []})})

    async def empty(_request: web.Request) -> web.Response:
        return web.json_response({"message": "ok"})

    async def broken(_request: web.Request) -> web.Response:
        return web.json_response(["not", "an", "envelope"])

    async def rejected(_request: web.Request) -> web.Response:
        return web.json_response({"error": "Invalid credentials"}, status=400)

    async def expired(_request: web.Request) -> web.Response:
        return web.json_response({"message": "Not authorized, token failed"}, status=401)

    async def multipart(request: web.Request) -> web.Response:
        form = await request.post()
        upload = form["attachments"]
        return web.json_response({"data": {
            "filename": upload.filename,
            "content_type": upload.content_type,
            "size": len(upload.file.read()),
            "data": json.loads(form["data"]),
        }})

    app.router.add_post("/echo", echo)
    app.router.add_get("/echo", echo)
    app.router.add_get("/stringly", stringly)
    app.router.add_get("/empty", empty)
    app.router.add_get("/broken", broken)
    app.router.add_post("/rejected", rejected)
    app.router.add_get("/expired", expired)
    app.router.add_post("/upload", multipart)
    return app


@asynccontextmanager
async def _serve() -> AsyncIterator[HttpTransport]:
    server = TestServer(_api())
    await server.start_server()
    transport = HttpTransport(str(server.make_url("")))
    try:
        yield transport
    finally:
        await transport.aclose()
        await server.close()


@pytest.mark.asyncio
async def test_call_sends_bearer_and_json():
    async with _serve() as transport:
        transport.set_credential("tok-1")
        data = await transport.call("/echo", {"conversation_id": "c1"})

    assert data == {"auth": "Bearer tok-1", "body": {"conversation_id": "c1"}}


@pytest.mark.asyncio
async def test_unauthenticated_call_has_no_header():
    async with _serve() as transport:
        data = await transport.call("/echo", {"email": "a@b.c"}, auth=False)

    assert data["auth"] is None


@pytest.mark.asyncio
async def test_missing_token_fails_before_network():
    transport = HttpTransport("http://127.0.0.1:1")

    with pytest.raises(AuthError, match="No authentication token available"):
        await transport.call("/chat/conversations", method="GET")
    await transport.aclose()


@pytest.mark.asyncio
async def test_string_data_is_decoded():
    async with _serve() as transport:
        transport.set_credential("tok")
        assert await transport.call("/stringly", method="GET") == {"conversations": []}
        assert await transport.call("/empty", method="GET") == {}


@pytest.mark.asyncio
async def test_non_envelope_body_is_invalid():
    async with _serve() as transport:
        transport.set_credential("tok")
        with pytest.raises(TransportError, match="Invalid response format"):
            await transport.call("/broken", method="GET")


@pytest.mark.asyncio
async def test_error_status_carries_server_message():
    async with _serve() as transport:
        with pytest.raises(TransportError) as info:
            await transport.call("/rejected", {}, auth=False)

    assert info.value.status == 400
    assert info.value.detail == "Invalid credentials"


@pytest.mark.asyncio
async def test_401_on_authenticated_call_is_auth_error():
    async with _serve() as transport:
        transport.set_credential("tok")
        with pytest.raises(AuthError, match="token failed"):
            await transport.call("/expired", method="GET")


@pytest.mark.asyncio
async def test_connection_refused_is_transport_error():
    transport = HttpTransport("http://127.0.0.1:1", timeout=2.0)
    transport.set_credential("tok")

    with pytest.raises(TransportError):
        await transport.call("/chat/conversations", method="GET")
    await transport.aclose()


@pytest.mark.asyncio
async def test_upload_sends_multipart(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG" + b"0" * 60)

    async with _serve() as transport:
        transport.set_credential("tok")
        data = await transport.upload("/upload", [path], {"conversation_id": "c1"})

    assert data == {
        "filename": "photo.png",
        "content_type": "image/png",
        "size": 64,
        "data": {"conversation_id": "c1"},
    }


@pytest.mark.asyncio
async def test_upload_of_unreadable_file(tmp_path):
    async with _serve() as transport:
        transport.set_credential("tok")
        with pytest.raises(TransportError, match="Cannot read attachment"):
            await transport.upload("/upload", [tmp_path / "missing.png"], {})
