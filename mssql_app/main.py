import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from mssql_app.api.main import api_router
from mssql_app.core.config import settings
from mssql_app.core.config_fields import ConfigFieldError
from mssql_app.core.pool import get_pool_manager

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
_logger = logging.getLogger(__name__)


def route_operation_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}" if route.tags else route.name


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    _logger.info("%s API starting (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    get_pool_manager().dispose()
    _logger.info("SQL Server pool disposed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    generate_unique_id_function=route_operation_id,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Exception handlers: every error body is {"detail": "..."}
# ---------------------------------------------------------------------------


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 with one "field.path: message" entry per error, joined by "; "."""
    parts = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        message = err.get("msg", "Invalid value")
        parts.append(f"{path}: {message}" if path else message)
    return _error(422, "; ".join(parts))


@app.exception_handler(ConfigFieldError)
async def config_error_handler(request: Request, exc: ConfigFieldError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log with traceback; the driver message is only exposed locally."""
    _logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.ENVIRONMENT == "local":
        return _error(500, f"Internal server error: {exc}")
    return _error(500, "Internal server error")


if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
