from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from mssql_app.api.deps import get_pool_manager_dep
from mssql_app.main import app
from mssql_app.models import AppConfig
from tests.utils.app_config import APP_CONFIG_VALUES
from tests.utils.fakes import FakePoolManager


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig.model_validate(APP_CONFIG_VALUES)


@pytest.fixture
def fake_pool_manager() -> Generator[FakePoolManager, None, None]:
    """Route handlers get a FakePoolManager instead of the shared one."""
    manager = FakePoolManager()
    app.dependency_overrides[get_pool_manager_dep] = lambda: manager
    yield manager
    app.dependency_overrides.pop(get_pool_manager_dep, None)
