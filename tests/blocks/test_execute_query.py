"""Tests for the executeQuery block."""

import pyodbc
import pytest

from mssql_app.blocks import BlockInputError, execute_query
from mssql_app.models import AppConfig
from tests.utils.fakes import FakeConnection, FakeCursor, FakePoolManager, result_set


def _run(app_config: AppConfig, manager: FakePoolManager, input_config: dict) -> list:
    events: list = []
    execute_query.run(app_config, input_config, events.append, pool_manager=manager)
    return events


def test_emits_all_rows_in_one_event(app_config: AppConfig) -> None:
    cur = FakeCursor([result_set(["id", "name"], [(1, "Ann"), (2, "Bob")])])
    manager = FakePoolManager(FakeConnection([cur]))
    events = _run(app_config, manager, {"query": "SELECT id, name FROM users"})
    assert events == [{"rows": [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}]}]
    assert manager.requested == [app_config]
    assert cur.closed


def test_named_parameters_are_bound(app_config: AppConfig) -> None:
    cur = FakeCursor([result_set(["id"], [(123,)])])
    manager = FakePoolManager(FakeConnection([cur]))
    sql = "SELECT id FROM users WHERE id = @userId AND name = @name"
    _run(app_config, manager, {"query": sql, "parameters": {"userId": 123, "name": "John"}})
    statement, args = cur.executed[0]
    assert statement == "EXEC sp_executesql ?, ?, @userId = ?, @name = ?"
    assert args == [sql, "@userId INT, @name NVARCHAR(MAX)", 123, "John"]


def test_empty_result(app_config: AppConfig) -> None:
    cur = FakeCursor([result_set(["id"], [])])
    events = _run(app_config, FakePoolManager(FakeConnection([cur])), {"query": "SELECT 1 WHERE 0 = 1"})
    assert events == [{"rows": []}]


def test_bigint_values_become_strings(app_config: AppConfig) -> None:
    cur = FakeCursor([result_set(["big"], [(9223372036854775807,)])])
    events = _run(app_config, FakePoolManager(FakeConnection([cur])), {"query": "SELECT big"})
    assert events[0]["rows"][0]["big"] == "9223372036854775807"


def test_missing_query_rejected(app_config: AppConfig) -> None:
    manager = FakePoolManager()
    with pytest.raises(BlockInputError, match="query"):
        _run(app_config, manager, {})
    assert manager.pool.checkouts == 0


def test_driver_error_propagates(app_config: AppConfig) -> None:
    cur = FakeCursor(error=pyodbc.ProgrammingError("42S02", "Invalid object name 'nope'"))
    with pytest.raises(pyodbc.ProgrammingError):
        _run(app_config, FakePoolManager(FakeConnection([cur])), {"query": "SELECT * FROM nope"})
