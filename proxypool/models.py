"""Data records describing proxies and their quality measurements."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class ProxyBasic:
    """A raw proxy entry: address and port, no quality information."""

    ip: str
    port: str

    def is_empty(self) -> bool:
        """True when both the address and the port are empty."""
        return not self.ip and not self.port

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProxyBasic:
        """Build an entry from a mapping with string ``ip`` and ``port`` keys.

        Other keys are ignored.
        """
        try:
            ip = data["ip"]
            port = data["port"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"proxy entry lacks ip or port: {data!r}") from exc
        if not isinstance(ip, str) or not isinstance(port, str):
            raise ValueError(f"proxy ip and port must be strings: {data!r}")
        return cls(ip, port)

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"


@dataclass(slots=True)
class ProxyCheckResult:
    """Quality measurements of one proxy; ``None`` means not measured."""

    speed: float | None = None
    success_rate: float | None = None
    stability: float | None = None
    score: float | None = None
    last_checked: datetime | None = None


@dataclass(slots=True)
class Proxy:
    """A proxy together with its quality measurements.

    ``speed`` is the mean response time in seconds, ``success_rate`` and
    ``stability`` lie in 0.0..1.0, and ``score`` combines them.
    """

    ip: str
    port: str
    speed: float | None = None
    success_rate: float | None = None
    stability: float | None = None
    score: float | None = None
    last_checked: datetime | None = None

    def basic(self) -> ProxyBasic:
        """The address part of this proxy."""
        return ProxyBasic(self.ip, self.port)

    def result(self) -> ProxyCheckResult:
        """The measurement part of this proxy."""
        return ProxyCheckResult(
            speed=self.speed,
            success_rate=self.success_rate,
            stability=self.stability,
            score=self.score,
            last_checked=self.last_checked,
        )

    @classmethod
    def from_parts(cls, basic: ProxyBasic, result: ProxyCheckResult) -> Proxy:
        """Join an address and a set of measurements."""
        return cls(
            ip=basic.ip,
            port=basic.port,
            speed=result.speed,
            success_rate=result.success_rate,
            stability=result.stability,
            score=result.score,
            last_checked=result.last_checked,
        )