"""Batch verification of proxies: de-duplicate, test, keep the working ones."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable

import httpx

from proxypool.config import get_config
from proxypool.models import ProxyBasic
from proxypool.quality import QualityConfig, evaluate
from proxypool.storage import ProxyStorage, get_storage
from proxypool.utils import dedup_proxies

logger = logging.getLogger(__name__)


async def verify_single(
    basic: ProxyBasic,
    config: QualityConfig | None = None,
    storage: ProxyStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Evaluate one proxy and store it when any request succeeded.

    Returns ``True`` when the proxy was found working and stored.
    """
    if storage is None:
        storage = get_storage()
    updated = await evaluate(basic, config, storage, transport)
    if (updated.success_rate or 0.0) > 0.0:
        await storage.upsert_quality_proxy(updated)
        return True
    return False


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


async def verify_all(
    basics: Iterable[ProxyBasic],
    config: QualityConfig | None = None,
    storage: ProxyStorage | None = None,
    concurrency: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Verify every distinct proxy, at most ``concurrency`` at a time.

    A proxy whose verification raises counts as failed. Returns the number
    of proxies found working and stored.
    """
    logger.info("========== [deduplicating proxies] ==========")
    unique = dedup_proxies(basics)

    if config is None:
        config = QualityConfig.from_settings()
    if storage is None:
        storage = get_storage()
    if concurrency is None:
        concurrency = get_config().verify.semaphore
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    logger.info("========== [verifying proxies] ==========")
    logger.info("starting verification of %d proxies", len(unique))

    semaphore = asyncio.Semaphore(concurrency)
    nodes = ", ".join(config.test_urls)

    async def check(index: int, basic: ProxyBasic) -> bool:
        async with semaphore:
            start = time.perf_counter()
            label = f"[#{index} {basic.ip}:{basic.port}]"
            logger.info("%s verifying against: %s", label, nodes)
            try:
                passed = await verify_single(basic, config, storage, transport)
            except Exception as exc:  # any failure marks this proxy as failed
                logger.error(
                    "%s verification error after %dms: %s", label, _elapsed_ms(start), exc
                )
                return False
            if passed:
                logger.info("%s passed in %dms", label, _elapsed_ms(start))
            else:
                logger.warning("%s invalid proxy, %dms", label, _elapsed_ms(start))
            return passed

    async with asyncio.TaskGroup() as group:
        tasks = [group.create_task(check(index, basic)) for index, basic in enumerate(unique, 1)]

    passed = sum(task.result() for task in tasks)
    logger.info("========== [results] ==========")
    logger.info(
        "verification done: %d total, %d passed, %d failed",
        len(unique), passed, len(unique) - passed,
    )
    return passed