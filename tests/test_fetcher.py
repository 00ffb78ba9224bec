"""HttpFetcher against httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from forkio import HttpFetcher, NetworkError
from forkio.fetcher import DEFAULT_USER_AGENT


@pytest.mark.asyncio
async def test_returns_body_text() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html>hi</html>")

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        body = await fetcher.fetch("http://example.test/page")
    finally:
        await fetcher.aclose()

    assert body == "<html>hi</html>"
    assert seen[0].method == "GET"
    assert seen[0].headers["User-Agent"] == DEFAULT_USER_AGENT


@pytest.mark.asyncio
async def test_error_status_still_returns_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        assert await fetcher.fetch("http://example.test/missing") == "not found"
    finally:
        await fetcher.aclose()


@pytest.mark.asyncio
async def test_transport_failure_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(NetworkError) as excinfo:
            await fetcher.fetch("http://down.test/")
    finally:
        await fetcher.aclose()

    assert excinfo.value.url == "http://down.test/"
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert "ConnectError" in str(excinfo.value)


@pytest.mark.asyncio
async def test_url_rejected_by_httpx_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="unreachable")

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(NetworkError) as excinfo:
            await fetcher.fetch("http://a\x00b/")
    finally:
        await fetcher.aclose()

    assert isinstance(excinfo.value.__cause__, httpx.InvalidURL)


@pytest.mark.asyncio
async def test_timeout_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = HttpFetcher(timeout=0.1, transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(NetworkError, match="ReadTimeout"):
            await fetcher.fetch("http://slow.test/")
    finally:
        await fetcher.aclose()


@pytest.mark.asyncio
async def test_follows_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "/new"})
        return httpx.Response(200, text="moved here")

    fetcher = HttpFetcher(transport=httpx.MockTransport(handler))
    try:
        assert await fetcher.fetch("http://example.test/old") == "moved here"
    finally:
        await fetcher.aclose()


def test_build_headers_merges_defaults() -> None:
    fetcher = HttpFetcher(user_agent="agent/1", default_headers={"Accept": "text/html"})

    headers = fetcher.build_headers({"X-Trace": "abc"})

    assert headers == {"User-Agent": "agent/1", "Accept": "text/html", "X-Trace": "abc"}


@pytest.mark.asyncio
async def test_aclose_without_fetch_is_noop() -> None:
    fetcher = HttpFetcher()

    await fetcher.aclose()
    await fetcher.aclose()
