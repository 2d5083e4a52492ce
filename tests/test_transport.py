from __future__ import annotations

import aiohttp
import pytest
from aiohttp import test_utils, web

from dashstate._transport import HttpJsonFetcher, fetch_json
from dashstate.exceptions import DashstateTransportError


async def _health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "components": {"db": "up"}})


async def _broken(request: web.Request) -> web.Response:
    return web.Response(status=503, text="maintenance")


async def _garbage(request: web.Request) -> web.Response:
    return web.Response(status=200, text="<html>", content_type="text/html")


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", _health)
    app.router.add_get("/broken", _broken)
    app.router.add_get("/garbage", _garbage)
    return app


@pytest.mark.asyncio
async def test_fetch_json_decodes_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        payload = await fetch_json(session, str(server.make_url("/health")), timeout=2.0)

    assert payload == {"status": "ok", "components": {"db": "up"}}


@pytest.mark.asyncio
async def test_fetch_json_non_200_raises_with_status() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        with pytest.raises(DashstateTransportError) as excinfo:
            await fetch_json(session, str(server.make_url("/broken")), timeout=2.0)

    assert excinfo.value.status_code == 503
    assert "maintenance" in str(excinfo.value)


@pytest.mark.asyncio
async def test_fetch_json_invalid_body_raises() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        with pytest.raises(DashstateTransportError, match="Invalid JSON"):
            await fetch_json(session, str(server.make_url("/garbage")), timeout=2.0)


@pytest.mark.asyncio
async def test_http_fetcher_owns_its_session() -> None:
    async with test_utils.TestServer(_app()) as server:
        fetcher = HttpJsonFetcher(str(server.make_url("/health")), timeout=2.0)
        try:
            assert (await fetcher())["status"] == "ok"
        finally:
            await fetcher.close()


@pytest.mark.asyncio
async def test_http_fetcher_leaves_external_session_open() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        fetcher = HttpJsonFetcher(str(server.make_url("/health")), timeout=2.0, session=session)
        await fetcher()
        await fetcher.close()

        assert not session.closed


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    fetcher = HttpJsonFetcher("http://127.0.0.1:9/health", timeout=2.0)
    try:
        with pytest.raises(DashstateTransportError):
            await fetcher()
    finally:
        await fetcher.close()
