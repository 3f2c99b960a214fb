"""Tests for the executeCommand block."""

import pytest

from mssql_app.blocks import BlockInputError, execute_command
from mssql_app.models import AppConfig
from tests.utils.fakes import FakeConnection, FakeCursor, FakePoolManager, row_count


def _run(app_config: AppConfig, cur: FakeCursor, input_config: dict) -> list:
    events: list = []
    manager = FakePoolManager(FakeConnection([cur]))
    execute_command.run(app_config, input_config, events.append, pool_manager=manager)
    return events


def test_emits_rows_affected(app_config: AppConfig) -> None:
    cur = FakeCursor([row_count(3)])
    events = _run(
        app_config,
        cur,
        {"command": "UPDATE users SET active = @a", "parameters": {"a": True}},
    )
    assert events == [{"rowsAffected": 3}]
    assert cur.executed[0][1][1] == "@a BIT"


def test_sums_counts_across_statements(app_config: AppConfig) -> None:
    cur = FakeCursor([row_count(2), row_count(5)])
    events = _run(app_config, cur, {"command": "DELETE FROM a; DELETE FROM b"})
    assert events == [{"rowsAffected": 7}]


def test_ddl_reports_zero(app_config: AppConfig) -> None:
    cur = FakeCursor([row_count(-1)])
    events = _run(app_config, cur, {"command": "CREATE TABLE t (id INT)"})
    assert events == [{"rowsAffected": 0}]


def test_parameters_must_be_object(app_config: AppConfig) -> None:
    with pytest.raises(BlockInputError):
        _run(app_config, FakeCursor(), {"command": "SELECT 1", "parameters": "[1]"})
