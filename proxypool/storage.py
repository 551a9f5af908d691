"""Storage backends behind one interface, and the process-wide storage."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from proxypool.config import DbConfig, get_config
from proxypool.errors import StorageError
from proxypool.models import Proxy, ProxyBasic
from proxypool.mysql_storage import MySqlStorage
from proxypool.sqlite_storage import SqliteStorage

logger = logging.getLogger(__name__)


class ProxyStorage(Protocol):
    """Reading and writing proxy records, whatever the database."""

    async def insert_basic_proxy(self, proxy: ProxyBasic) -> None:
        """Insert a bare address with no quality information."""

    async def upsert_quality_proxy(self, proxy: Proxy) -> None:
        """Insert or update a proxy together with its measurements."""

    async def find_proxy_by_ip_port(self, ip: str, port: str) -> Proxy | None:
        """The stored proxy with this address, or ``None``."""

    async def list_all_proxies(self) -> list[Proxy]:
        """Every stored proxy, best score first."""

    async def close(self) -> None:
        """Release the connections held by the backend."""


_OPENERS: dict[str, Callable[[DbConfig], Awaitable[ProxyStorage]]] = {
    "sqlite": SqliteStorage.open,
    "mysql": MySqlStorage.open,
}

_storage: ProxyStorage | None = None


async def open_storage(db_config: DbConfig) -> ProxyStorage:
    """Open the backend named by ``db_config.driver`` ("sqlite" or "mysql")."""
    opener = _OPENERS.get(db_config.driver)
    if opener is None:
        raise StorageError(f"Unsupported DB type: {db_config.driver}")
    return await opener(db_config)


async def init_storage(db_config: DbConfig | None = None) -> ProxyStorage:
    """Open the process-wide storage once; the configuration's ``db`` by default."""
    global _storage
    if _storage is not None:
        raise StorageError("Storage already initialized")
    if db_config is None:
        db_config = get_config().db
    storage = await open_storage(db_config)
    if _storage is not None:
        await storage.close()
        raise StorageError("Storage already initialized")
    _storage = storage
    return storage


def get_storage() -> ProxyStorage:
    """The process-wide storage set up by :func:`init_storage`."""
    if _storage is None:
        raise StorageError("Storage not initialized")
    return _storage