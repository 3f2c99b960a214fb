"""
Bulk Insert block: multi-row parameterized INSERT.

Rows are bound as @p1..@pN. SQL Server accepts at most 2100 parameters per
request and 1000 row value expressions per INSERT, so large inputs are split
into chunks that run inside a single transaction.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from mssql_app.core.config_fields import ConfigField
from mssql_app.core.pool import execute, rows_affected

from .base import Block, BlockEvent, BlockInputError, output_declaration

MAX_PARAMS_PER_STATEMENT = 2000
MAX_ROWS_PER_STATEMENT = 1000


def sanitize_identifier(name: str) -> str:
    """Strip any brackets and wrap in [...] so the name cannot break out."""
    cleaned = str(name).replace("[", "").replace("]", "")
    return f"[{cleaned}]"


def sanitize_table_name(table_name: str) -> str:
    """'dbo.users' -> '[dbo].[users]'; 'users' -> '[users]'."""
    return ".".join(sanitize_identifier(part) for part in str(table_name).split("."))


def rows_per_statement(column_count: int) -> int:
    if column_count > MAX_PARAMS_PER_STATEMENT:
        raise BlockInputError(
            f"Too many columns for one INSERT: {column_count} "
            f"(max {MAX_PARAMS_PER_STATEMENT})"
        )
    return max(1, min(MAX_ROWS_PER_STATEMENT, MAX_PARAMS_PER_STATEMENT // column_count))


def build_insert(
    table: str, columns: list[str], rows: list[list[Any]]
) -> tuple[str, dict[str, Any]]:
    """INSERT statement plus its @pN parameters for one chunk of rows."""
    columns_list = ", ".join(sanitize_identifier(c) for c in columns)
    params: dict[str, Any] = {}
    value_sets: list[str] = []
    index = 1
    for row in rows:
        placeholders = []
        for value in row:
            name = f"p{index}"
            placeholders.append(f"@{name}")
            params[name] = value
            index += 1
        value_sets.append(f"({', '.join(placeholders)})")
    sql = (
        f"INSERT INTO {sanitize_table_name(table)} ({columns_list}) "
        f"VALUES {', '.join(value_sets)}"
    )
    return sql, params


def _validate_rows(columns: list[Any], rows: list[Any]) -> None:
    if not columns:
        raise BlockInputError("columns must not be empty")
    if not all(isinstance(c, str) and c.strip() for c in columns):
        raise BlockInputError("columns must be non-empty strings")
    for i, row in enumerate(rows):
        if not isinstance(row, list):
            raise BlockInputError(f"rows[{i}] must be an array")
        if len(row) != len(columns):
            raise BlockInputError(
                f"rows[{i}] has {len(row)} values, expected {len(columns)}"
            )


@contextmanager
def _transaction(conn: Any) -> Iterator[None]:
    conn.autocommit = False
    try:
        yield
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.autocommit = True


def on_event(event: BlockEvent) -> None:
    table: str = event.input_config["table"]
    columns: list[str] = event.input_config["columns"]
    rows: list[list[Any]] = event.input_config["rows"]

    if not rows:
        event.emit({"rowCount": 0, "table": table})
        return

    _validate_rows(columns, rows)
    step = rows_per_statement(len(columns))
    chunks = [rows[i : i + step] for i in range(0, len(rows), step)]

    total = 0
    with event.pool().connection() as conn:
        with _transaction(conn):
            for chunk in chunks:
                sql, params = build_insert(table, columns, chunk)
                cur = execute(conn, sql, params)
                try:
                    total += rows_affected(cur)
                finally:
                    cur.close()

    event.emit({"rowCount": total or len(rows), "table": table})


bulk_insert = Block(
    block_id="bulkInsert",
    name="Bulk Insert",
    description="Efficiently inserts multiple rows using a parameterized query",
    category="Bulk Operations",
    config={
        "table": ConfigField(
            name="Table Name",
            description="Target table name (optionally with schema, e.g., 'dbo.users')",
            type="string",
            required=True,
        ),
        "columns": ConfigField(
            name="Column Names",
            description="Array of column names to insert into",
            type={"type": "array", "items": {"type": "string"}},
            required=True,
        ),
        "rows": ConfigField(
            name="Rows Data",
            description=(
                "Array of row data arrays (each inner array must match columns order)"
            ),
            type={"type": "array", "items": {"type": "array", "items": {}}},
            required=True,
        ),
    },
    output=output_declaration(
        "Insert Result",
        "The result of the bulk insert operation",
        {
            "type": "object",
            "properties": {
                "rowCount": {
                    "type": "number",
                    "description": "Number of rows inserted",
                },
                "table": {
                    "type": "string",
                    "description": "The table name where rows were inserted",
                },
            },
            "required": ["rowCount", "table"],
        },
    ),
    on_event=on_event,
)
