"""
Shared connection pool for SQL Server.

One ConnectionPool is kept per process, keyed by the hash of the app config.
PoolManager.get_pool() returns it while the config is unchanged and the
pool is connected; a config change closes the old pool and builds a new one.
Initialisation is serialised so concurrent blocks never open two pools for
the same config.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

import pyodbc

from mssql_app.core.config import settings
from mssql_app.models import AppConfig

from .connect import connect

_log = logging.getLogger(__name__)


class PoolClosedError(RuntimeError):
    """Raised when acquiring from a pool that has been closed."""

    pass


class PoolTimeoutError(TimeoutError):
    """Raised when no connection became free within the acquire timeout."""

    pass


class _PoolEntry(NamedTuple):
    conn: Any
    last_used: float  # time.monotonic() when last returned to pool


def _close_quiet(conn: Any) -> None:
    try:
        conn.close()
    except Exception:
        pass


def _log_pool_error(exc: BaseException) -> None:
    _log.error("Unexpected SQL Server pool error: %s", exc)


class ConnectionPool:
    """Bounded pool of pyodbc connections for one AppConfig."""

    def __init__(
        self,
        config: AppConfig,
        *,
        max_size: int | None = None,
        min_size: int | None = None,
        idle_timeout: float | None = None,
        acquire_timeout: float | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self.config = config
        self._max_size = max(1, max_size or settings.POOL_MAX_SIZE)
        self._min_size = min(
            self._max_size,
            settings.POOL_MIN_SIZE if min_size is None else min_size,
        )
        self._idle_timeout = (
            settings.POOL_IDLE_TIMEOUT_SEC if idle_timeout is None else idle_timeout
        )
        self._acquire_timeout = (
            settings.POOL_ACQUIRE_TIMEOUT_SEC
            if acquire_timeout is None
            else acquire_timeout
        )
        self._on_error = on_error or _log_pool_error
        self._idle: list[_PoolEntry] = []
        self._in_use = 0
        self._cond = threading.Condition()
        self._connected = False
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._connected and not self._closed

    def connect(self) -> "ConnectionPool":
        """Open the first connection (validates the config) plus min_size warm ones."""
        with self._cond:
            if self._closed:
                raise PoolClosedError("Connection pool is closed")
        opened: list[Any] = []
        try:
            for _ in range(max(1, self._min_size)):
                opened.append(self._open())
        except Exception:
            for conn in opened:
                _close_quiet(conn)
            raise
        now = time.monotonic()
        with self._cond:
            self._idle.extend(_PoolEntry(conn, now) for conn in opened)
            self._connected = True
            self._cond.notify_all()
        return self

    def acquire(self) -> Any:
        """Check out a connection, waiting up to the acquire timeout when all are in use."""
        deadline = time.monotonic() + self._acquire_timeout
        stale: list[_PoolEntry] = []
        entry: _PoolEntry | None = None
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise PoolClosedError("Connection pool is closed")
                    entry = self._pop_idle(stale)
                    if entry is not None or self._size() < self._max_size:
                        self._in_use += 1
                        break
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise PoolTimeoutError(
                            f"No connection available within {self._acquire_timeout}s"
                        )
                    self._cond.wait(remaining)
        finally:
            for e in stale:
                _close_quiet(e.conn)

        if entry is not None:
            return entry.conn
        try:
            return self._open()
        except Exception:
            with self._cond:
                self._in_use -= 1
                self._cond.notify()
            raise

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a connection to the pool (or close it when discarded or closed)."""
        if not discard:
            try:
                if not conn.autocommit:
                    conn.rollback()
                    conn.autocommit = True
            except Exception:
                discard = True

        with self._cond:
            self._in_use = max(0, self._in_use - 1)
            keep = not discard and not self._closed
            if keep:
                self._idle.append(_PoolEntry(conn, time.monotonic()))
            self._cond.notify()
        if not keep:
            _close_quiet(conn)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """
        ``with pool.connection() as conn:`` checkout/return.

        Connection-level driver errors discard the connection instead of
        returning it to the pool.
        """
        conn = self.acquire()
        discard = False
        try:
            yield conn
        except (pyodbc.OperationalError, pyodbc.InterfaceError):
            discard = True
            raise
        finally:
            self.release(conn, discard=discard)

    def close(self) -> None:
        """Close idle connections; in-use ones are closed when released."""
        with self._cond:
            self._closed = True
            self._connected = False
            entries, self._idle = self._idle, []
            self._cond.notify_all()
        for e in entries:
            _close_quiet(e.conn)

    def stats(self) -> dict[str, Any]:
        with self._cond:
            return {
                "connected": self.connected,
                "max_size": self._max_size,
                "idle": len(self._idle),
                "in_use": self._in_use,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _size(self) -> int:
        return self._in_use + len(self._idle)

    def _pop_idle(self, stale: list[_PoolEntry]) -> _PoolEntry | None:
        """Pop the most recently used idle entry; expired ones go to stale."""
        if self._idle_timeout > 0:
            now = time.monotonic()
            fresh = []
            for e in self._idle:
                if now - e.last_used > self._idle_timeout:
                    stale.append(e)
                else:
                    fresh.append(e)
            self._idle = fresh
        if self._idle:
            return self._idle.pop()
        return None

    def _open(self) -> Any:
        try:
            return connect(self.config)
        except Exception as e:
            self._on_error(e)
            raise


class PoolManager:
    """Holds the single shared pool and recreates it when the config changes."""

    def __init__(self) -> None:
        self._pool: ConnectionPool | None = None
        self._config_hash: str | None = None
        self._init_lock = threading.Lock()

    def get_pool(self, app_config: AppConfig) -> ConnectionPool:
        """Return the shared pool for app_config, creating or recreating it if needed."""
        config_hash = app_config.config_hash()
        pool = self._current(config_hash)
        if pool is not None:
            return pool

        # Only one initialisation at a time; late arrivals reuse its result.
        with self._init_lock:
            pool = self._current(config_hash)
            if pool is not None:
                return pool

            old = self._pool
            if old is not None:
                if self._config_hash != config_hash:
                    _log.info("SQL Server config changed, recreating pool")
                else:
                    _log.info("SQL Server pool disconnected, recreating pool")
                try:
                    old.close()
                except Exception:
                    _log.error("Error closing old pool", exc_info=True)
                self._pool = None
                self._config_hash = None

            new_pool = ConnectionPool(app_config)
            new_pool.connect()

            self._pool = new_pool
            self._config_hash = config_hash
            _log.debug(
                "SQL Server pool connected",
                extra={"server": app_config.server, "database": app_config.database},
            )
            return new_pool

    @contextmanager
    def connection(self, app_config: AppConfig) -> Iterator[Any]:
        """Shortcut: pooled connection for app_config."""
        with self.get_pool(app_config).connection() as conn:
            yield conn

    def dispose(self) -> None:
        """Close and drop the shared pool."""
        with self._init_lock:
            pool, self._pool = self._pool, None
            self._config_hash = None
        if pool is not None:
            pool.close()

    def stats(self) -> dict[str, Any]:
        """Return pool statistics for monitoring."""
        pool = self._pool
        if pool is None:
            return {"initialized": False}
        return {"initialized": True, **pool.stats()}

    def _current(self, config_hash: str) -> ConnectionPool | None:
        pool = self._pool
        if pool is not None and self._config_hash == config_hash and pool.connected:
            return pool
        return None


_pool_manager: PoolManager | None = None
_pool_lock = threading.Lock()


def get_pool_manager() -> PoolManager:
    """Return the singleton PoolManager (thread-safe double-checked locking)."""
    global _pool_manager
    if _pool_manager is None:
        with _pool_lock:
            if _pool_manager is None:
                _pool_manager = PoolManager()
    return _pool_manager
