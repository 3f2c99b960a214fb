"""
SQL Server connections and the shared connection pool.

pyodbc is installed via pip; the Microsoft ODBC driver must be present on
the host. AppConfig (server, port, ...) is enough to connect.
"""

from .connect import connect, cursor_to_dicts, execute, rows_affected
from .manager import (
    ConnectionPool,
    PoolClosedError,
    PoolManager,
    PoolTimeoutError,
    get_pool_manager,
)

__all__ = [
    "connect",
    "execute",
    "cursor_to_dicts",
    "rows_affected",
    "ConnectionPool",
    "PoolClosedError",
    "PoolTimeoutError",
    "PoolManager",
    "get_pool_manager",
]
