"""Unit tests for core.health readiness/liveness."""

from unittest.mock import MagicMock, patch

from mssql_app.core.health import check_pool, liveness_check, readiness_check


def _manager(stats: dict) -> MagicMock:
    m = MagicMock()
    m.stats.return_value = stats
    return m


def test_liveness_is_always_ok() -> None:
    assert liveness_check() == (True, [])


def test_no_pool_yet_is_ready() -> None:
    with patch(
        "mssql_app.core.health.get_pool_manager",
        return_value=_manager({"initialized": False}),
    ):
        assert check_pool() is True
        assert readiness_check() == (True, [])


def test_disconnected_pool_is_not_ready() -> None:
    with patch(
        "mssql_app.core.health.get_pool_manager",
        return_value=_manager({"initialized": True, "connected": False}),
    ):
        assert readiness_check() == (False, ["mssql_pool"])
