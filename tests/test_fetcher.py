"""
Unit tests for the page fetcher against a local aiohttp server.
"""

import asyncio

import pytest
from aiohttp import web, test_utils

from regwatch.monitors.fetcher import DEFAULT_USER_AGENT, PageFetcher
from regwatch.monitors.results import FetchSuccess, HttpFailure, TransportFailure


def make_app() -> web.Application:
    async def ok(request):
        return web.Response(body=b"<html>Rule 21 CFR 700</html>", content_type="text/html")

    async def user_agent(request):
        return web.Response(text=request.headers.get("User-Agent", ""))

    async def missing(request):
        return web.Response(status=404, text="Not Found")

    async def server_error(request):
        return web.Response(status=500, text="Internal Server Error")

    async def no_content(request):
        return web.Response(status=204)

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/ua", user_agent)
    app.router.add_get("/missing", missing)
    app.router.add_get("/error", server_error)
    app.router.add_get("/empty", no_content)
    app.router.add_get("/slow", slow)
    return app


class TestPageFetcher:
    """Test fetch outcome classification."""

    @pytest.mark.asyncio
    async def test_success_returns_raw_bytes(self):
        async with test_utils.TestServer(make_app()) as server:
            async with PageFetcher(timeout=5) as fetcher:
                outcome = await fetcher.fetch(str(server.make_url("/ok")))

        assert outcome == FetchSuccess(content=b"<html>Rule 21 CFR 700</html>", http_status=200)

    @pytest.mark.asyncio
    async def test_sends_identifying_user_agent(self):
        async with test_utils.TestServer(make_app()) as server:
            async with PageFetcher(timeout=5) as fetcher:
                default = await fetcher.fetch(str(server.make_url("/ua")))
            async with PageFetcher(user_agent="Custom-Monitor/2.0", timeout=5) as fetcher:
                custom = await fetcher.fetch(str(server.make_url("/ua")))

        assert default.content.decode() == DEFAULT_USER_AGENT
        assert custom.content.decode() == "Custom-Monitor/2.0"

    @pytest.mark.asyncio
    async def test_any_2xx_is_success(self):
        async with test_utils.TestServer(make_app()) as server:
            async with PageFetcher(timeout=5) as fetcher:
                outcome = await fetcher.fetch(str(server.make_url("/empty")))

        assert isinstance(outcome, FetchSuccess)
        assert outcome.http_status == 204
        assert outcome.content == b""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path,status", [("/missing", 404), ("/error", 500)])
    async def test_non_success_status_is_http_failure(self, path, status):
        async with test_utils.TestServer(make_app()) as server:
            async with PageFetcher(timeout=5) as fetcher:
                outcome = await fetcher.fetch(str(server.make_url(path)))

        assert outcome == HttpFailure(http_status=status)
        assert outcome.error_message == f"HTTP {status}"

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self):
        async with test_utils.TestServer(make_app()) as server:
            async with PageFetcher(timeout=0.2) as fetcher:
                outcome = await fetcher.fetch(str(server.make_url("/slow")))

        assert isinstance(outcome, TransportFailure)
        assert outcome.error_message == "Timeout after 0.2s"

    @pytest.mark.asyncio
    async def test_connection_refused_is_transport_failure(self):
        server = test_utils.TestServer(make_app())
        await server.start_server()
        url = str(server.make_url("/ok"))
        await server.close()

        async with PageFetcher(timeout=5) as fetcher:
            outcome = await fetcher.fetch(url)

        assert isinstance(outcome, TransportFailure)
        assert outcome.error_message

    @pytest.mark.asyncio
    async def test_invalid_url_is_transport_failure(self):
        async with PageFetcher(timeout=5) as fetcher:
            outcome = await fetcher.fetch("not-a-url")

        assert isinstance(outcome, TransportFailure)

    @pytest.mark.asyncio
    async def test_fetch_outside_context_raises(self):
        with pytest.raises(RuntimeError):
            await PageFetcher().fetch("https://example.gov")
