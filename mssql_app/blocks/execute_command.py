"""Execute Command block: INSERT/UPDATE/DELETE/DDL, emits the affected row count."""

from mssql_app.core.config_fields import ConfigField
from mssql_app.core.pool import execute, rows_affected

from .base import PARAMETERS_FIELD, Block, BlockEvent, output_declaration


def on_event(event: BlockEvent) -> None:
    command = event.input_config["command"]
    params = event.input_config.get("parameters") or {}

    with event.pool().connection() as conn:
        cur = execute(conn, command, params)
        try:
            total = rows_affected(cur)
        finally:
            cur.close()

    event.emit({"rowsAffected": total})


execute_command = Block(
    block_id="executeCommand",
    name="Execute Command",
    description=(
        "Executes INSERT, UPDATE, DELETE, or DDL commands "
        "(use Execute Query for OUTPUT clauses)"
    ),
    category="Basic",
    config={
        "command": ConfigField(
            name="SQL Command",
            description="SQL command to execute with optional @parameter placeholders",
            type="string",
            required=True,
        ),
        "parameters": PARAMETERS_FIELD,
    },
    output=output_declaration(
        "Command Result",
        "The result of the SQL command execution",
        {
            "type": "object",
            "properties": {
                "rowsAffected": {
                    "type": "number",
                    "description": "Number of rows affected by the command",
                },
            },
            "required": ["rowsAffected"],
        },
    ),
    on_event=on_event,
)
