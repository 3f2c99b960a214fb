"""Tests for /api/v1/utils routes (liveness, health-check, pool stats)."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from mssql_app.core.config import settings
from tests.utils.fakes import FakePoolManager


def test_liveness(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/liveness/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_200_when_ready(client: TestClient) -> None:
    """GET /health-check/ returns 200 with true when no pool exists or it is connected."""
    with patch("mssql_app.api.routes.utils.readiness_check", return_value=(True, [])):
        r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_503_when_readiness_fails(client: TestClient) -> None:
    """GET /health-check/ returns 503 with envelope when readiness_check fails."""
    with patch(
        "mssql_app.api.routes.utils.readiness_check", return_value=(False, ["mssql_pool"])
    ):
        r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 503
    data = r.json()
    assert data.get("success") is False
    assert data["data"] == ["mssql_pool"]


def test_pool_stats(client: TestClient, fake_pool_manager: FakePoolManager) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/pool-stats/")
    assert r.status_code == 200
    assert r.json() == {
        "initialized": True,
        "connected": True,
        "max_size": 10,
        "idle": 1,
        "in_use": 0,
    }
