"""SQLite-backed proxy storage."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from types import TracebackType

import aiosqlite

from proxypool.config import DbConfig
from proxypool.errors import StorageError
from proxypool.models import Proxy, ProxyBasic
from proxypool.utils import validate_table_name

logger = logging.getLogger(__name__)

_COLUMNS = "ip, port, speed, success_rate, stability, score, last_checked"


@contextmanager
def _translate(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageError(f"SQLite {action} failed: {exc}") from exc


def _database_target(connection_string: str) -> tuple[str, bool]:
    """Turn a ``sqlite:`` connection string into a database name and URI flag."""
    for prefix in ("sqlite://", "sqlite:"):
        if connection_string.startswith(prefix):
            rest = connection_string[len(prefix):]
            break
    else:
        raise StorageError(f"not a SQLite connection string: {connection_string!r}")
    path, _, query = rest.partition("?")
    path = path or ":memory:"
    if query:
        return f"file:{path}?{query}", True
    return path, False


def _encode_time(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat(sep=" ")


def _decode_time(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _row_to_proxy(row: sqlite3.Row) -> Proxy:
    return Proxy(
        ip=row["ip"],
        port=row["port"],
        speed=row["speed"],
        success_rate=row["success_rate"],
        stability=row["stability"],
        score=row["score"],
        last_checked=_decode_time(row["last_checked"]),
    )


class SqliteStorage:
    """Proxy records kept in one SQLite table with a unique ``(ip, port)``."""

    def __init__(self, connection: aiosqlite.Connection, table_name: str) -> None:
        self._connection = connection
        self._table = table_name

    @classmethod
    async def open(cls, db_config: DbConfig) -> SqliteStorage:
        """Connect to the configured database and make sure the table exists."""
        database, uri = _database_target(db_config.connection_string)
        with _translate("connect"):
            connection = await aiosqlite.connect(database, uri=uri)
        connection.row_factory = sqlite3.Row
        storage = cls(connection, db_config.table_name)
        try:
            await storage.create_table()
        except BaseException:
            await connection.close()
            raise
        logger.info("SQLite database connected")
        return storage

    async def __aenter__(self) -> SqliteStorage:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def create_table(self) -> None:
        """Create the proxy table if it does not exist yet."""
        if not validate_table_name(self._table):
            raise StorageError(
                f"invalid table name in configuration: {self._table!r}; "
                "use letters, digits and underscores, starting with a letter"
            )
        with _translate("create table"):
            await self._connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ip TEXT NOT NULL,
                    port TEXT NOT NULL,
                    speed REAL DEFAULT 0.0,
                    success_rate REAL DEFAULT 0.0,
                    stability REAL DEFAULT 0.0,
                    score REAL DEFAULT 0.0,
                    last_checked DATETIME DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(ip, port)
                )
                """
            )
            await self._connection.commit()

    async def insert_basic_proxy(self, proxy: ProxyBasic) -> None:
        """Insert a bare address; an existing ``(ip, port)`` is left alone."""
        with _translate("insert"):
            await self._connection.execute(
                f"INSERT OR IGNORE INTO {self._table} (ip, port) VALUES (?, ?)",
                (proxy.ip, proxy.port),
            )
            await self._connection.commit()
        logger.info("inserted basic proxy %s:%s", proxy.ip, proxy.port)

    async def upsert_quality_proxy(self, proxy: Proxy) -> None:
        """Insert a proxy with its measurements, or update the existing row."""
        with _translate("upsert"):
            await self._connection.execute(
                f"""
                INSERT INTO {self._table} ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(ip, port) DO UPDATE SET
                    speed=excluded.speed,
                    success_rate=excluded.success_rate,
                    stability=excluded.stability,
                    score=excluded.score,
                    last_checked=excluded.last_checked
                """,
                (
                    proxy.ip,
                    proxy.port,
                    proxy.speed,
                    proxy.success_rate,
                    proxy.stability,
                    proxy.score,
                    _encode_time(proxy.last_checked),
                ),
            )
            await self._connection.commit()

    async def find_proxy_by_ip_port(self, ip: str, port: str) -> Proxy | None:
        """The stored proxy with this address, or ``None``."""
        with _translate("query"):
            async with self._connection.execute(
                f"SELECT {_COLUMNS} FROM {self._table} WHERE ip = ? AND port = ?",
                (ip, port),
            ) as cursor:
                row = await cursor.fetchone()
        return None if row is None else _row_to_proxy(row)

    async def list_all_proxies(self) -> list[Proxy]:
        """Every stored proxy, best score first."""
        with _translate("query"):
            async with self._connection.execute(
                f"SELECT {_COLUMNS} FROM {self._table} ORDER BY score DESC"
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_proxy(row) for row in rows]

    async def close(self) -> None:
        """Close the database connection."""
        with _translate("close"):
            await self._connection.close()