"""Small helpers: rounding, scoring, de-duplication and name checks."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from proxypool.models import ProxyBasic

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_TABLE_NAME = re.compile(r"[A-Za-z][A-Za-z0-9_]*")

_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": TRACE,
}


def round2(value: float) -> float:
    """Round to two decimals, halves away from zero."""
    if not math.isfinite(value):
        return value
    hundredths = Decimal(value * 100.0).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(hundredths) / 100.0


def dedup_proxies(proxies: Iterable[ProxyBasic]) -> list[ProxyBasic]:
    """Drop repeated ``ip:port`` pairs, keeping the first of each."""
    seen: set[str] = set()
    unique = []
    for proxy in proxies:
        key = f"{proxy.ip}:{proxy.port}"
        if key not in seen:
            seen.add(key)
            unique.append(proxy)
    return unique


def speed_to_score(speed: float) -> float:
    """Score a response time in milliseconds on 0.0..1.0; faster is better."""
    if speed <= 0.0:
        return 0.0
    if speed < 300.0:
        return 1.0
    if speed < 1000.0:
        ratio = (speed - 300.0) / 700.0
        return 1.0 - ratio ** 0.5
    if speed < 5000.0:
        ratio = (speed - 1000.0) / 4000.0
        return max(0.3 - ratio, 0.0)
    return 0.0


def validate_table_name(name: str) -> bool:
    """True for ASCII letters, digits and underscores starting with a letter."""
    return _TABLE_NAME.fullmatch(name) is not None


def parse_level(name: str) -> int | None:
    """Map a level name, in any case, to a logging level; ``None`` if unknown."""
    return _LEVELS.get(name.upper())