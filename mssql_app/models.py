"""
App configuration model shared by the pool manager, sync and all blocks.

The platform sends config keys in camelCase (trustServerCertificate, ...);
both camelCase aliases and snake_case names are accepted.
"""

import hashlib
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Fields that identify a pool. Order is fixed so the hash is stable.
_HASH_FIELDS = (
    "server",
    "port",
    "database",
    "username",
    "password",
    "encrypt",
    "trust_server_certificate",
    "ca_certificate",
    "connection_timeout",
    "request_timeout",
)


class AppConfig(BaseModel):
    """Validated connection settings for one SQL Server installation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    server: str = Field(..., min_length=1)
    port: int = Field(default=1433, ge=1, le=65535)
    database: str = Field(default="master", min_length=1)
    username: str = Field(..., min_length=1)
    password: str | None = None
    encrypt: bool = True
    trust_server_certificate: bool = Field(
        default=False, alias="trustServerCertificate"
    )
    ca_certificate: str | None = Field(default=None, alias="caCertificate")
    connection_timeout: float = Field(default=15, ge=0, alias="connectionTimeout")
    request_timeout: int | None = Field(default=30000, ge=0, alias="requestTimeout")

    def config_hash(self) -> str:
        """SHA-256 of the connection fields; changes whenever any of them changes."""
        payload: dict[str, Any] = {name: getattr(self, name) for name in _HASH_FIELDS}
        raw = json.dumps(payload, separators=(",", ":"))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def redacted(self) -> dict[str, Any]:
        """Config for logs and API output; secrets omitted."""
        data = self.model_dump(by_alias=True, exclude={"password", "ca_certificate"})
        data["password"] = "***" if self.password else None
        data["caCertificate"] = "***" if self.ca_certificate else None
        return data
