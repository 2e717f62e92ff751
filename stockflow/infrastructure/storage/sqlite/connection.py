"""
Async SQLite connection pool with aiosqlite.

Every workflow transition borrows one connection for the length of its
transaction; the pool bounds how many transitions run at once.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from stockflow.config import get_logger, get_settings
from stockflow.config.settings import StorageSettings

logger = get_logger(__name__)

# WAL lets readers proceed while a writer holds the reserved lock
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


class ConnectionPool:
    """
    Fixed-size pool of aiosqlite connections.

    A connection is held by exactly one caller at a time, so a transaction
    opened on it is never interleaved with another caller's statements.
    ``close()`` leaves the pool reusable: the next ``acquire()`` reopens it.
    """

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, storage: StorageSettings) -> "ConnectionPool":
        return cls(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )

    @property
    def is_open(self) -> bool:
        return bool(self._connections)

    async def initialize(self) -> None:
        """Open ``pool_size`` connections (no-op when already open)."""
        async with self._lock:
            if self.is_open:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._open_connection()
                self._connections.append(conn)
                self._idle.put_nowait(conn)

            logger.info(
                "connection_pool_initialized",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
            )

    async def _open_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in CONNECTION_PRAGMAS:
            await conn.execute(pragma)
        # Writers wait this long for BEGIN IMMEDIATE instead of failing
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection; it returns to the pool on exit.

        Usage:
            async with pool.acquire() as conn:
                await conn.execute(...)
        """
        if not self.is_open:
            await self.initialize()

        conn = await self._idle.get()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside an explicit transaction.

        Commits on success and rolls back on any exception, cancellation
        included. ``immediate`` takes the write lock up front (BEGIN
        IMMEDIATE), so two writers queue at the start instead of one failing
        at commit.
        """
        async with self.acquire() as conn:
            await conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    async def close(self) -> None:
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._idle = asyncio.Queue(maxsize=self.pool_size)
            logger.info("connection_pool_closed", db_path=str(self.db_path))


# Global connection pool
_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Get or create the pool for the configured database."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_settings(get_settings().storage)
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    """Close the global pool; the next ``get_pool()`` builds a new one."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
