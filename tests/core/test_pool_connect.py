"""
Unit tests for core.pool.connect: connection string,
timeouts, execute, cursor_to_dicts, rows_affected. The driver is mocked.
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from mssql_app.core.pool import connect, cursor_to_dicts, execute, rows_affected
from mssql_app.core.pool.connect import build_connection_string, query_timeout_seconds
from mssql_app.models import AppConfig
from tests.utils.fakes import FakeConnection, FakeCursor, result_set, row_count


def _config(**overrides: object) -> AppConfig:
    values = {
        "server": "db.local",
        "port": 1433,
        "database": "app",
        "username": "sa",
        "password": "pw",
    }
    values.update(overrides)
    return AppConfig.model_validate(values)


def test_connection_string_defaults() -> None:
    s = build_connection_string(_config())
    assert s.startswith("DRIVER={ODBC Driver 18 for SQL Server};")
    assert "SERVER=db.local,1433;" in s
    assert "DATABASE=app;" in s
    assert "UID=sa;" in s
    assert "PWD=pw;" in s
    assert "Encrypt=yes;" in s
    assert "TrustServerCertificate=no;" in s
    assert ";ServerCertificate=" not in s


def test_connection_string_quotes_special_characters() -> None:
    s = build_connection_string(_config(password="p;w}d", encrypt=False))
    assert "PWD={p;w}}d};" in s
    assert "Encrypt=no;" in s


def test_ca_certificate_written_to_file() -> None:
    pem = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"
    s = build_connection_string(_config(caCertificate=pem))
    part = next(p for p in s.split(";") if p.startswith("ServerCertificate="))
    path = part.split("=", 1)[1]
    with open(path, encoding="utf-8") as fh:
        assert fh.read() == pem
    # same content reuses the same file
    assert build_connection_string(_config(caCertificate=pem)) == s
    os.unlink(path)


@pytest.mark.parametrize(
    "ms,expected", [(None, 0), (0, 0), (1, 1), (1000, 1), (1500, 2), (30000, 30)]
)
def test_query_timeout_seconds(ms: int | None, expected: int) -> None:
    assert query_timeout_seconds(ms) == expected


def test_connect_passes_timeouts_and_autocommit() -> None:
    conn = MagicMock()
    with patch("mssql_app.core.pool.connect.pyodbc.connect", return_value=conn) as m:
        result = connect(_config(connectionTimeout=20, requestTimeout=5000))
    assert result is conn
    args, kwargs = m.call_args
    assert "SERVER=db.local,1433" in args[0]
    assert kwargs == {"autocommit": True, "timeout": 20}
    assert conn.timeout == 5


def test_execute_without_params() -> None:
    cur = FakeCursor([result_set(["one"], [(1,)])])
    conn = FakeConnection([cur])
    assert execute(conn, "SELECT 1") is cur
    assert cur.executed == [("SELECT 1", [])]


def test_execute_binds_named_params() -> None:
    cur = FakeCursor([result_set(["id"], [(7,)])])
    execute(FakeConnection([cur]), "SELECT @id AS id", {"id": 7})
    statement, args = cur.executed[0]
    assert statement == "EXEC sp_executesql ?, ?, @id = ?"
    assert args == ["SELECT @id AS id", "@id INT", 7]


def test_execute_closes_cursor_on_error() -> None:
    cur = FakeCursor(error=RuntimeError("syntax"))
    with pytest.raises(RuntimeError):
        execute(FakeConnection([cur]), "SELEC 1")
    assert cur.closed


def test_cursor_to_dicts_skips_row_counts() -> None:
    cur = FakeCursor(
        [row_count(1), result_set(["id", "name"], [(1, "a"), (2, "b")])]
    )
    assert cursor_to_dicts(cur) == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]


def test_cursor_to_dicts_no_result_set() -> None:
    assert cursor_to_dicts(FakeCursor([row_count(3)])) == []


def test_rows_affected_sums_all_results() -> None:
    cur = FakeCursor([row_count(2), row_count(-1), row_count(3)])
    assert rows_affected(cur) == 5


def test_rows_affected_ddl_is_zero() -> None:
    assert rows_affected(FakeCursor([row_count(-1)])) == 0

