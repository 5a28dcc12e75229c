"""
Database connection factory for the registry indexer.

Provides centralized management of the async PostgreSQL pool shared by the
sync engine (single writer) and the query API (many readers). The PoolManager
singleton hands out one `AsyncConnectionPool` per process and closes it on
shutdown.

Opening the pool retries transient connection failures using tenacity.
"""

from __future__ import annotations

import threading
from typing import Optional

import psycopg
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from registry_indexer.config import Settings, get_settings
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)

_TRANSIENT_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout)


class PoolManager:
    """
    Thread-safe singleton for managing the async connection pool.

    The pool is created lazily and opened explicitly with `open()`; close it
    with `close()` from the same event loop that opened it.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._async_pool: Optional[AsyncConnectionPool] = None
            return cls._instance

    def get_async_pool(
        self,
        settings: Optional[Settings] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> AsyncConnectionPool:
        """
        Get or create the (unopened) asynchronous connection pool.

        Parameters
        ----------
        settings : Settings | None
            Source of the DSN and pool bounds. Defaults to `get_settings()`.
        min_size : int | None
            Minimum number of idle connections to keep. Defaults to `settings.db_pool_min`.
        max_size : int | None
            Maximum total connections in the pool. Defaults to `settings.db_pool_max`.

        Returns
        -------
        AsyncConnectionPool
            The managed async pool instance. An existing pool is returned as
            is; close it first to connect somewhere else.
        """
        with self._lock:
            if self._async_pool is None:
                settings = settings or get_settings()
                self._async_pool = AsyncConnectionPool(
                    conninfo=settings.dsn(),
                    min_size=min_size or settings.db_pool_min,
                    max_size=max_size or settings.db_pool_max,
                    open=False,
                )
            return self._async_pool

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )
    async def open(self, settings: Optional[Settings] = None, timeout: float = 10.0) -> AsyncConnectionPool:
        """
        Open the pool and wait until `min_size` connections are ready.

        Retries up to 3 times with exponential backoff. A pool that timed out
        is discarded so the next attempt starts from a fresh one.

        Parameters
        ----------
        settings : Settings | None
            Database to connect to. Defaults to `get_settings()`.
        timeout : float
            Seconds to wait for the first connections on each attempt.

        Raises
        ------
        psycopg_pool.PoolTimeout
            If the database stays unreachable after all retry attempts.
        """
        pool = self.get_async_pool(settings)
        try:
            await pool.open(wait=True, timeout=timeout)
        except PoolTimeout:
            log.warning("Database pool did not become ready", extra={"timeout": timeout})
            await self._discard(pool)
            raise
        return pool

    async def _discard(self, pool: AsyncConnectionPool) -> None:
        await pool.close()
        with self._lock:
            if self._async_pool is pool:
                self._async_pool = None

    async def close(self) -> None:
        """Close the managed pool and release its connections."""
        with self._lock:
            pool, self._async_pool = self._async_pool, None
        if pool is not None:
            await pool.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
async def get_async_connection(dsn: Optional[str] = None) -> AsyncConnection:
    """
    Acquire a dedicated asynchronous connection with automatic retry.

    Used for one-off work such as applying the schema. Prefer the pool for
    everything else.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return await AsyncConnection.connect(dsn or get_settings().dsn())


__all__ = ["PoolManager", "get_async_connection"]
