"""Execute Query block: run a SELECT and emit all rows."""

from mssql_app.core.config_fields import ConfigField
from mssql_app.core.pool import cursor_to_dicts, execute
from mssql_app.core.serialize import serialize_row

from .base import PARAMETERS_FIELD, Block, BlockEvent, output_declaration


def on_event(event: BlockEvent) -> None:
    query = event.input_config["query"]
    params = event.input_config.get("parameters") or {}

    with event.pool().connection() as conn:
        cur = execute(conn, query, params)
        try:
            rows = cursor_to_dicts(cur)
        finally:
            cur.close()

    event.emit({"rows": [serialize_row(r) for r in rows]})


execute_query = Block(
    block_id="executeQuery",
    name="Execute Query",
    description="Executes a SELECT query and returns the results",
    category="Basic",
    config={
        "query": ConfigField(
            name="SQL Query",
            description="SQL SELECT query with optional @parameter placeholders",
            type="string",
            required=True,
        ),
        "parameters": PARAMETERS_FIELD,
    },
    output=output_declaration(
        "Query Result",
        "The result of the SELECT query",
        {
            "type": "object",
            "properties": {
                "rows": {
                    "type": "array",
                    "description": "Array of result rows",
                    "items": {"type": "object"},
                },
            },
            "required": ["rows"],
        },
    ),
    on_event=on_event,
)
