"""
App sync: test a configuration before the blocks use it.

Opens one throwaway connection (not the shared pool), runs SELECT 1 and
checks CONNECT permission on the configured database. Driver failures are
mapped to short status descriptions for the platform UI.
"""

import logging
import re
from typing import Any, Literal

import pyodbc
from pydantic import BaseModel, ConfigDict, Field

from mssql_app.models import AppConfig

from .pool.connect import connect, cursor_to_dicts, execute

_log = logging.getLogger(__name__)

_NATIVE_ERROR_RE = re.compile(r"\((\d+)\)")

# SQLSTATEs raised by the ODBC driver before a session exists
_UNREACHABLE_STATES = {"08001", "HYT00", "08004"}
_NETWORK_STATES = {"08S01"}

LOGIN_FAILED = 18456
DATABASE_UNAVAILABLE = 4060


class SyncResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_status: Literal["ready", "failed"] = Field(alias="newStatus")
    custom_status_description: str | None = Field(
        default=None, alias="customStatusDescription"
    )


def _sqlstate(exc: BaseException) -> str | None:
    args = getattr(exc, "args", ())
    if args and isinstance(args[0], str) and len(args[0]) == 5:
        return args[0]
    return None


def _native_errors(exc: BaseException) -> set[int]:
    return {int(n) for n in _NATIVE_ERROR_RE.findall(str(exc))}


def describe_connection_error(exc: BaseException) -> str:
    """Map a driver exception to a user-facing status description."""
    native = _native_errors(exc)
    if LOGIN_FAILED in native:
        return "Authentication failed"
    if DATABASE_UNAVAILABLE in native:
        return "Database does not exist"
    state = _sqlstate(exc)
    if state in _NETWORK_STATES:
        return "Network error connecting to server"
    if state in _UNREACHABLE_STATES:
        return "Cannot reach database server"
    if state == "28000":
        return "Authentication failed"
    return "Connection failed"


def sync_app(config: AppConfig) -> SyncResult:
    conn: Any = None
    try:
        conn = connect(config)

        # Test basic connectivity
        cur = execute(conn, "SELECT 1")
        cur.fetchall()
        cur.close()

        # Check database access permission
        cur = execute(
            conn,
            "SELECT HAS_PERMS_BY_NAME(@dbName, 'DATABASE', 'CONNECT') AS can_connect",
            {"dbName": config.database},
        )
        rows = cursor_to_dicts(cur)
        cur.close()

        if not rows or not rows[0].get("can_connect"):
            return SyncResult(
                new_status="failed",
                custom_status_description="Insufficient database permissions",
            )
        return SyncResult(new_status="ready")
    except (pyodbc.Error, OSError) as e:
        _log.error(
            "SQL Server connection test failed: %s", e, extra={"config": config.redacted()}
        )
        return SyncResult(
            new_status="failed",
            custom_status_description=describe_connection_error(e),
        )
    finally:
        if conn is not None:
            try:
                conn.close()
            except Exception:
                pass
