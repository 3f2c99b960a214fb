"""
DB connection helpers for SQL Server.

Uses pyodbc with the Microsoft ODBC driver; TDS, TLS and certificate
validation are left to the driver. AppConfig (server, port, ...) is enough
to open a connection.
"""

import hashlib
import logging
import math
import os
import tempfile
import threading
from typing import Any

import pyodbc

from mssql_app.core.config import settings
from mssql_app.core.params import bind_parameters
from mssql_app.models import AppConfig

_log = logging.getLogger(__name__)

_ca_lock = threading.Lock()
_ca_files: dict[str, str] = {}


def _quote(value: str) -> str:
    """Brace-quote an ODBC attribute value when it contains special characters."""
    if not value or any(c in value for c in ";{}=") or value != value.strip():
        return "{" + value.replace("}", "}}") + "}"
    return value


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _ca_certificate_file(pem: str) -> str:
    """Write the PEM bundle once per content and return its path."""
    digest = hashlib.sha256(pem.encode("utf-8")).hexdigest()
    with _ca_lock:
        path = _ca_files.get(digest)
        if path and os.path.exists(path):
            return path
        fd, path = tempfile.mkstemp(prefix="mssql-ca-", suffix=".pem")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(pem)
        _ca_files[digest] = path
        _log.debug("Wrote CA certificate bundle to %s", path)
        return path


def build_connection_string(config: AppConfig) -> str:
    """ODBC connection string for config (login timeout is passed separately)."""
    parts = [
        ("DRIVER", "{" + settings.MSSQL_ODBC_DRIVER + "}"),
        ("SERVER", _quote(f"{config.server},{config.port}")),
        ("DATABASE", _quote(config.database)),
        ("UID", _quote(config.username)),
        ("PWD", _quote(config.password or "")),
        ("Encrypt", _yes_no(config.encrypt)),
        ("TrustServerCertificate", _yes_no(config.trust_server_certificate)),
    ]
    if config.ca_certificate:
        parts.append(("ServerCertificate", _quote(_ca_certificate_file(config.ca_certificate))))
    return ";".join(f"{k}={v}" for k, v in parts) + ";"


def query_timeout_seconds(request_timeout_ms: int | None) -> int:
    """requestTimeout is in milliseconds; pyodbc wants whole seconds (0 = none)."""
    if not request_timeout_ms or request_timeout_ms <= 0:
        return 0
    return max(1, math.ceil(request_timeout_ms / 1000))


def connect(config: AppConfig) -> Any:
    """Open an autocommit connection to the configured server."""
    conn = pyodbc.connect(
        build_connection_string(config),
        autocommit=True,
        timeout=math.ceil(config.connection_timeout),
    )
    conn.timeout = query_timeout_seconds(config.request_timeout)
    return conn


def execute(conn: Any, sql: str, params: dict[str, Any] | None = None) -> Any:
    """
    Execute SQL with optional named parameters and return the cursor.
    Caller uses cursor_to_dicts(cursor) or rows_affected(cursor).
    """
    cur = conn.cursor()
    try:
        return run_statement(cur, sql, params)
    except Exception:
        cur.close()
        raise


def run_statement(cur: Any, sql: str, params: dict[str, Any] | None = None) -> Any:
    """Bind params and execute on an already open cursor."""
    statement, args = bind_parameters(sql, params)
    if args:
        cur.execute(statement, *args)
    else:
        cur.execute(statement)
    return cur


def column_names(cursor: Any) -> list[str]:
    return [d[0] for d in cursor.description or []]


def _advance_to_result_set(cursor: Any) -> bool:
    """Skip row-count-only results (DML before a SELECT) until rows are available."""
    while cursor.description is None:
        if not cursor.nextset():
            return False
    return True


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Rows of the first result set as dicts."""
    if not _advance_to_result_set(cursor):
        return []
    names = column_names(cursor)
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def rows_affected(cursor: Any) -> int:
    """Sum row counts across every result of the batch (-1 means not applicable)."""
    total = 0
    while True:
        count = cursor.rowcount
        if count is not None and count > 0:
            total += count
        if not cursor.nextset():
            break
    return total
