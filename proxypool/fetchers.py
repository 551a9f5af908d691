"""Collect raw proxy entries from public proxy list sites."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from proxypool.models import ProxyBasic

logger = logging.getLogger(__name__)

BFBKE_URL = "https://www.bfbke.com/proxy.txt"
KUAI_URL = "https://www.kuaidaili.com/free/intr/{page}/"
KUAI_PAGES = 1

_FPS_LIST = re.compile(r"const fpsList = (.*);")


def parse_proxy_text(text: str) -> list[ProxyBasic]:
    """Parse ``ip:port`` lines; lines without a colon are skipped."""
    proxies = []
    for line in text.splitlines():
        parts = line.split(":")
        if len(parts) >= 2:
            proxies.append(ProxyBasic(parts[0], parts[1]))
    return proxies


def parse_fps_list(html: str) -> list[ProxyBasic]:
    """Extract the ``fpsList`` JSON array embedded in a page.

    A page without it yields no entries; malformed JSON raises ``ValueError``.
    """
    match = _FPS_LIST.search(html)
    if match is None:
        return []
    entries = json.loads(match.group(1))
    if not isinstance(entries, list):
        raise ValueError("fpsList is not a JSON array")
    return [ProxyBasic.from_dict(entry) for entry in entries]


@asynccontextmanager
async def _client_or_new(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient() as owned:
        yield owned


async def fetch_bfbke(client: httpx.AsyncClient | None = None) -> list[ProxyBasic]:
    """Download and parse the plain-text BFBKE proxy list."""
    async with _client_or_new(client) as http:
        response = await http.get(BFBKE_URL)
        proxies = parse_proxy_text(response.text)
    logger.info("BFBKE fetched %d proxies", len(proxies))
    return proxies


async def fetch_kuai(
    client: httpx.AsyncClient | None = None, pages: int = KUAI_PAGES
) -> list[ProxyBasic]:
    """Download pages ``1..pages`` of the Kuai free list and parse each."""
    proxies: list[ProxyBasic] = []
    async with _client_or_new(client) as http:
        for page in range(1, pages + 1):
            logger.info("requesting page %d", page)
            response = await http.get(KUAI_URL.format(page=page))
            proxies.extend(parse_fps_list(response.text))
    return proxies


async def fetch_all_sources(client: httpx.AsyncClient | None = None) -> list[ProxyBasic]:
    """Every source's entries, BFBKE first; any source's failure propagates."""
    async with _client_or_new(client) as http:
        proxies = await fetch_bfbke(http)
        proxies.extend(await fetch_kuai(http))
    return proxies