"""Proxy quality measurement: timed requests, success rate, stability, score."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import httpx

from proxypool.config import VerifyConfig, get_config
from proxypool.models import Proxy, ProxyBasic, ProxyCheckResult
from proxypool.storage import ProxyStorage, get_storage
from proxypool.utils import round2, speed_to_score

logger = logging.getLogger(__name__)

_INITIAL_BACKOFF = 0.5
_FAST_TIMEOUT = 3.0
_NEW_PROXY_STABILITY = 0.5


class VerifyLevel(Enum):
    """How thoroughly each proxy is tested."""

    FAST = 0
    STANDARD = 1
    DETAILED = 2

    @classmethod
    def from_code(cls, code: int) -> VerifyLevel:
        """The level for a configuration code; unknown codes mean STANDARD."""
        try:
            return cls(code)
        except ValueError:
            return cls.STANDARD


@dataclass
class QualityConfig:
    """Score weights and test parameters; ``timeout`` is in seconds."""

    speed_weight: float = 0.4
    success_weight: float = 0.3
    stability_weight: float = 0.3
    test_count: int = 3
    max_retries: int = 3
    timeout: float = 5.0
    test_urls: list[str] = field(default_factory=list)
    verify_level: VerifyLevel = VerifyLevel.STANDARD

    @classmethod
    def from_settings(cls, verify: VerifyConfig | None = None) -> QualityConfig:
        """Derive test parameters from the verification settings.

        Without settings, the application configuration is used.
        """
        if verify is None:
            verify = get_config().verify
        level = VerifyLevel.from_code(verify.verify_level)
        if level is VerifyLevel.FAST:
            test_count, max_retries, timeout = 1, 0, _FAST_TIMEOUT
        elif level is VerifyLevel.DETAILED:
            test_count, max_retries, timeout = 5, 5, float(verify.timeout * 2)
        else:
            test_count, max_retries, timeout = 3, 3, float(verify.timeout)
        return cls(
            test_count=test_count,
            max_retries=max_retries,
            timeout=timeout,
            test_urls=list(verify.test_urls),
            verify_level=level,
        )


@dataclass
class QualityTestResults:
    """Response times of successful requests and the count of failures."""

    total: int
    successes: list[float] = field(default_factory=list)
    failures: int = 0

    def record_success(self, seconds: float) -> None:
        """Record a successful request that took ``seconds``."""
        self.successes.append(seconds)

    def record_failure(self) -> None:
        """Record a failed request."""
        self.failures += 1

    def success_rate(self) -> float:
        """Successes over planned tests, rounded to two decimals."""
        if self.total == 0:
            return 0.0
        return round2(len(self.successes) / self.total)

    def average_speed(self) -> float:
        """Mean time of the successful requests in seconds; 0.0 if none."""
        if not self.successes:
            return 0.0
        return round2(sum(self.successes) / len(self.successes))


def merge_test_results(results: Iterable[QualityTestResults]) -> QualityTestResults:
    """Combine several result sets into one."""
    merged = QualityTestResults(total=0)
    for result in results:
        merged.total += result.total
        merged.successes.extend(result.successes)
        merged.failures += result.failures
    return merged


def compute_score(result: ProxyCheckResult, config: QualityConfig) -> float:
    """Weighted score clamped to 0.0..1.0; missing measurements count as worst."""
    speed = result.speed if result.speed is not None else sys.float_info.max
    success = result.success_rate if result.success_rate is not None else 0.0
    stability = result.stability if result.stability is not None else 0.0
    score = (
        speed_to_score(speed) * config.speed_weight
        + success * config.success_weight
        + stability * config.stability_weight
    )
    return min(max(score, 0.0), 1.0)


async def send_with_retries(
    client: httpx.AsyncClient, url: str, max_retries: int, label: str
) -> float | None:
    """GET ``url``, retrying with exponential back-off.

    Returns the time of the first 2xx response in seconds, rounded to two
    decimals, or ``None`` when every attempt failed.
    """
    backoff = _INITIAL_BACKOFF
    for attempt in range(1, max_retries + 2):
        logger.debug("%s attempt %d: requesting %s", label, attempt, url)
        start = time.perf_counter()
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.debug("%s attempt %d: %s failed: %s", label, attempt, url, exc)
        else:
            if response.is_success:
                elapsed = time.perf_counter() - start
                logger.debug(
                    "%s attempt %d: %s succeeded in %.2f s", label, attempt, url, elapsed
                )
                return round2(elapsed)
            logger.debug(
                "%s attempt %d: %s returned status %d",
                label, attempt, url, response.status_code,
            )
        if attempt <= max_retries:
            logger.debug("%s waiting %.1f s before retrying", label, backoff)
            await asyncio.sleep(backoff)
            backoff *= 2
        else:
            logger.debug("%s giving up on %s after %d attempts", label, url, attempt)
    return None


async def run_tests(
    proxy: ProxyBasic,
    config: QualityConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> QualityTestResults:
    """Request every test URL ``test_count`` times through the proxy, concurrently.

    A ``transport``, when given, carries the requests instead of a
    connection through the proxy.
    """
    if transport is None:
        transport = httpx.AsyncHTTPTransport(proxy=httpx.Proxy(f"http://{proxy.ip}:{proxy.port}"))
    label = f"[{proxy.ip}:{proxy.port}]"
    results = QualityTestResults(total=len(config.test_urls) * config.test_count)
    async with httpx.AsyncClient(transport=transport, timeout=config.timeout) as client:
        outcomes = await asyncio.gather(
            *(
                send_with_retries(client, url, config.max_retries, label)
                for url in config.test_urls
                for _ in range(config.test_count)
            )
        )
    for outcome in outcomes:
        if outcome is None:
            results.record_failure()
        else:
            results.record_success(outcome)
    return results


async def evaluate(
    proxy: ProxyBasic,
    config: QualityConfig | None = None,
    storage: ProxyStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Proxy:
    """Test a proxy and return it with speed, success rate, stability and score.

    Stability blends the stored stability with the change in success rate
    since the last check; a proxy seen for the first time gets 0.5.
    """
    if config is None:
        config = QualityConfig.from_settings()
    if storage is None:
        storage = get_storage()

    tests = await run_tests(proxy, config, transport)
    result = ProxyCheckResult(
        speed=tests.average_speed(),
        success_rate=tests.success_rate(),
        last_checked=datetime.now(timezone.utc).replace(tzinfo=None),
    )

    old = await storage.find_proxy_by_ip_port(proxy.ip, proxy.port)
    if old is None:
        result.stability = _NEW_PROXY_STABILITY
    else:
        old_rate = old.success_rate if old.success_rate is not None else 0.0
        old_stability = old.stability if old.stability is not None else _NEW_PROXY_STABILITY
        delta = abs(result.success_rate - old_rate)
        stability = old_stability * 0.7 + (1.0 - delta) * 0.3
        result.stability = min(max(stability, 0.0), 1.0)

    result.score = compute_score(result, config)
    return Proxy.from_parts(proxy, result)