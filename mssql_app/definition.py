"""
App definition: name, install instructions, app config fields and blocks.
"""

from typing import Any

from mssql_app.blocks import BLOCKS
from mssql_app.core.config_fields import (
    ConfigField,
    ConfigFieldError,
    describe_fields,
    validate_config,
)
from mssql_app.models import AppConfig

APP_NAME = "Microsoft SQL Server"

INSTALLATION_INSTRUCTIONS = (
    "Connect your Microsoft SQL Server database to your workflows.\n\n"
    "To install:\n"
    "1. Provide your SQL Server connection details\n"
    "2. Click 'Confirm' to test the connection\n"
    "3. Start using the SQL Server blocks in your flows"
)

APP_CONFIG_FIELDS: dict[str, ConfigField] = {
    "server": ConfigField(
        name="Server",
        description="SQL Server hostname or IP address",
        type="string",
        required=True,
    ),
    "port": ConfigField(
        name="Port",
        description="SQL Server port",
        type="number",
        required=True,
        default=1433,
    ),
    "database": ConfigField(
        name="Database",
        description="Name of the database to connect to",
        type="string",
        required=True,
        default="master",
    ),
    "username": ConfigField(
        name="Username",
        description="SQL Server username for authentication",
        type="string",
        required=True,
    ),
    "password": ConfigField(
        name="Password",
        description="SQL Server password for authentication",
        type="string",
        required=False,
        sensitive=True,
    ),
    "encrypt": ConfigField(
        name="Encrypt Connection",
        description="Enable TLS encryption for connections",
        type="boolean",
        required=True,
        default=True,
    ),
    "trustServerCertificate": ConfigField(
        name="Trust Server Certificate",
        description=(
            "Trust the server certificate without validation "
            "(for self-signed certificates)"
        ),
        type="boolean",
        required=True,
        default=False,
    ),
    "caCertificate": ConfigField(
        name="CA Certificate",
        description=(
            "PEM-encoded CA certificate for verifying the server certificate "
            "(e.g., AWS RDS CA bundle)"
        ),
        type="string",
        required=False,
        sensitive=True,
    ),
    "connectionTimeout": ConfigField(
        name="Connection Timeout",
        description="Connection timeout in seconds",
        type="number",
        required=True,
        default=15,
    ),
    "requestTimeout": ConfigField(
        name="Request Timeout",
        description="Request timeout in milliseconds (0 for no timeout)",
        type="number",
        required=False,
        default=30000,
    ),
}


def load_app_config(values: dict[str, Any] | None) -> AppConfig:
    """Apply field defaults/coercion, then build the AppConfig model."""
    data = validate_config(APP_CONFIG_FIELDS, values)
    known = {k: v for k, v in data.items() if k in APP_CONFIG_FIELDS and v is not None}
    try:
        return AppConfig.model_validate(known)
    except ValueError as e:
        raise ConfigFieldError(str(e)) from e


def describe_app() -> dict[str, Any]:
    return {
        "name": APP_NAME,
        "installationInstructions": INSTALLATION_INSTRUCTIONS,
        "config": describe_fields(APP_CONFIG_FIELDS),
        "blocks": list(BLOCKS),
    }
