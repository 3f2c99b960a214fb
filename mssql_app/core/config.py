from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, HttpUrl, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Microsoft SQL Server"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: HttpUrl | None = None
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    # ODBC driver name as registered in odbcinst.ini
    MSSQL_ODBC_DRIVER: str = "ODBC Driver 18 for SQL Server"

    # Shared connection pool (one pool per app config)
    POOL_MAX_SIZE: int = 10
    POOL_MIN_SIZE: int = 0
    POOL_IDLE_TIMEOUT_SEC: float = 30.0
    POOL_ACQUIRE_TIMEOUT_SEC: float = 30.0

    # Stream Query block
    STREAM_DEFAULT_BATCH_SIZE: int = 100
    STREAM_FETCH_SIZE: int = 500


settings = Settings()  # type: ignore
