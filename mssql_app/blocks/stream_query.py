"""
Stream Query block: run a query and emit the rows in batches.

Rows are pulled from a QueryStream (driver pump on a background thread) and
grouped into batches of batchSize. A full batch is held back until the next
row shows up, so the final batch is always the one with hasMore=False.
A query without rows emits nothing.
"""

from typing import Any

from mssql_app.core.config import settings
from mssql_app.core.config_fields import ConfigField
from mssql_app.core.serialize import serialize_row
from mssql_app.core.stream import stream_rows

from .base import PARAMETERS_FIELD, Block, BlockEvent, BlockInputError, output_declaration


def resolve_batch_size(value: Any) -> int:
    """Missing or zero falls back to the default; negatives are rejected."""
    if not value:
        return settings.STREAM_DEFAULT_BATCH_SIZE
    try:
        size = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise BlockInputError(f"batchSize must be a positive integer, got {value!r}") from e
    if size != value or size < 0:
        raise BlockInputError(f"batchSize must be a positive integer, got {value!r}")
    return size


def on_event(event: BlockEvent) -> None:
    query = event.input_config["query"]
    params = event.input_config.get("parameters") or {}
    batch_size = resolve_batch_size(event.input_config.get("batchSize"))

    batch_number = 0
    current: list[dict[str, Any]] = []
    pending: list[dict[str, Any]] | None = None

    def _emit(rows: list[dict[str, Any]], has_more: bool) -> None:
        nonlocal batch_number
        event.emit(
            {
                "batchNumber": batch_number,
                "rows": rows,
                "rowCount": len(rows),
                "hasMore": has_more,
            }
        )
        batch_number += 1

    with event.pool().connection() as conn:
        stream = stream_rows(conn, query, params, fetch_size=settings.STREAM_FETCH_SIZE)
        try:
            for row in stream:
                if pending is not None:
                    _emit(pending, True)
                    pending = None
                current.append(serialize_row(row))
                if len(current) >= batch_size:
                    pending, current = current, []
        finally:
            stream.close()

    # Emit any remaining rows
    if pending is not None:
        _emit(pending, False)
    elif current:
        _emit(current, False)


stream_query = Block(
    block_id="streamQuery",
    name="Stream Query",
    description=(
        "Executes a query and streams results in batches as separate events "
        "for large datasets."
    ),
    category="Bulk Operations",
    config={
        "query": ConfigField(
            name="SQL Query",
            description=(
                "SQL query to execute and stream results, "
                "with optional @parameter placeholders"
            ),
            type="string",
            required=True,
        ),
        "parameters": PARAMETERS_FIELD,
        "batchSize": ConfigField(
            name="Batch Size",
            description="Number of rows per batch event",
            type="number",
            required=False,
        ),
    },
    output=output_declaration(
        "Batch",
        "Emitted for each batch of rows",
        {
            "type": "object",
            "properties": {
                "batchNumber": {
                    "type": "number",
                    "description": "Sequential batch number starting from 0",
                },
                "rows": {
                    "type": "array",
                    "description": "Array of rows in this batch",
                    "items": {"type": "object"},
                },
                "rowCount": {
                    "type": "number",
                    "description": "Number of rows in this batch",
                },
                "hasMore": {
                    "type": "boolean",
                    "description": "Whether more batches are expected",
                },
            },
            "required": ["batchNumber", "rows", "rowCount", "hasMore"],
        },
    ),
    on_event=on_event,
)
