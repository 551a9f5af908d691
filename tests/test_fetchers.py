import httpx
import pytest

from proxypool.fetchers import (
    fetch_all_sources,
    fetch_bfbke,
    fetch_kuai,
    parse_fps_list,
    parse_proxy_text,
)
from proxypool.models import ProxyBasic

BFBKE_TEXT = "203.0.113.1:8080\n203.0.113.2:3128\n"
KUAI_HTML = (
    "<html><script>\n"
    '    const fpsList = [{"ip": "198.51.100.7", "port": "9000", "location": "x"}];\n'
    "</script></html>"
)


def _client(requested=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if requested is not None:
            requested.append((request.url.host, request.url.path))
        if request.url.host == "www.bfbke.com":
            return httpx.Response(200, text=BFBKE_TEXT)
        return httpx.Response(200, text=KUAI_HTML)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_parse_proxy_text_lines():
    assert parse_proxy_text(BFBKE_TEXT) == [
        ProxyBasic("203.0.113.1", "8080"),
        ProxyBasic("203.0.113.2", "3128"),
    ]


def test_parse_proxy_text_skips_lines_without_colon():
    text = "\nnot-a-proxy\n203.0.113.3:80:extra\r\n"
    assert parse_proxy_text(text) == [ProxyBasic("203.0.113.3", "80")]


def test_parse_fps_list_extracts_entries():
    assert parse_fps_list(KUAI_HTML) == [ProxyBasic("198.51.100.7", "9000")]


def test_parse_fps_list_without_match_is_empty():
    assert parse_fps_list("<html>nothing here</html>") == []


def test_parse_fps_list_bad_json_raises():
    with pytest.raises(ValueError):
        parse_fps_list("const fpsList = [oops;")


@pytest.mark.asyncio
async def test_fetch_bfbke():
    async with _client() as client:
        proxies = await fetch_bfbke(client)
    assert len(proxies) > 0
    assert proxies[0] == ProxyBasic("203.0.113.1", "8080")


@pytest.mark.asyncio
async def test_fetch_kuai_requests_each_page():
    requested = []
    async with _client(requested) as client:
        proxies = await fetch_kuai(client, pages=2)
    assert requested == [
        ("www.kuaidaili.com", "/free/intr/1/"),
        ("www.kuaidaili.com", "/free/intr/2/"),
    ]
    assert proxies == [ProxyBasic("198.51.100.7", "9000")] * 2


@pytest.mark.asyncio
async def test_fetch_kuai_default_single_page():
    requested = []
    async with _client(requested) as client:
        proxies = await fetch_kuai(client)
    assert len(requested) == 1
    assert len(proxies) > 0


@pytest.mark.asyncio
async def test_fetch_all_sources_bfbke_first():
    async with _client() as client:
        proxies = await fetch_all_sources(client)
    assert proxies == [
        ProxyBasic("203.0.113.1", "8080"),
        ProxyBasic("203.0.113.2", "3128"),
        ProxyBasic("198.51.100.7", "9000"),
    ]


@pytest.mark.asyncio
async def test_fetch_all_sources_propagates_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.ConnectError):
            await fetch_all_sources(client)