from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from mssql_app.api.deps import PoolManagerDep
from mssql_app.core.health import liveness_check, readiness_check

router = APIRouter(prefix="/utils", tags=["utils"])


def _unavailable(message: str, failures: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": message, "data": failures},
    )


@router.get("/liveness/", response_model=None)
async def liveness() -> bool | JSONResponse:
    """Process is up. No SQL Server round trip."""
    ok, failures = liveness_check()
    return True if ok else _unavailable("Process unhealthy", failures)


@router.get("/health-check/", response_model=None)
async def health_check() -> bool | JSONResponse:
    """
    Readiness: true while the shared pool (when one exists) is connected,
    otherwise 503 with the failing checks in ``data``.
    """
    ok, failures = readiness_check()
    return True if ok else _unavailable("Service Unavailable", failures)


@router.get("/pool-stats/")
def pool_stats(pool_manager: PoolManagerDep) -> dict[str, Any]:
    return pool_manager.stats()
