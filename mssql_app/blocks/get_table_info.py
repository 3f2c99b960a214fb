"""
Get Table Info block: table, columns, constraints and indexes from sys.* catalog views.

Requires SQL Server 2017+ (STRING_AGG ... WITHIN GROUP).
"""

from typing import Any

from mssql_app.core.config_fields import ConfigField
from mssql_app.core.pool import cursor_to_dicts, execute
from mssql_app.core.serialize import make_json_safe

from .base import Block, BlockEvent, output_declaration

DEFAULT_SCHEMA = "dbo"

TABLE_QUERY = """
SELECT
  s.name AS table_schema,
  t.name AS table_name,
  CASE WHEN t.type = 'U' THEN 'BASE TABLE' WHEN t.type = 'V' THEN 'VIEW' END AS table_type,
  CAST(ep.value AS NVARCHAR(MAX)) AS table_comment
FROM sys.tables t
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
LEFT JOIN sys.extended_properties ep
  ON ep.major_id = t.object_id AND ep.minor_id = 0 AND ep.name = 'MS_Description'
WHERE s.name = @p1 AND t.name = @p2
"""

COLUMNS_QUERY = """
SELECT
  c.name AS column_name,
  TYPE_NAME(c.user_type_id) AS data_type,
  CASE WHEN c.is_nullable = 1 THEN 'YES' ELSE 'NO' END AS is_nullable,
  dc.definition AS column_default,
  c.max_length AS character_maximum_length,
  c.precision AS numeric_precision,
  c.scale AS numeric_scale,
  CAST(ep.value AS NVARCHAR(MAX)) AS column_comment
FROM sys.columns c
INNER JOIN sys.tables t ON c.object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
LEFT JOIN sys.default_constraints dc ON c.default_object_id = dc.object_id
LEFT JOIN sys.extended_properties ep
  ON ep.major_id = c.object_id AND ep.minor_id = c.column_id AND ep.name = 'MS_Description'
WHERE s.name = @p1 AND t.name = @p2
ORDER BY c.column_id
"""

CONSTRAINTS_QUERY = """
SELECT
  kc.name AS constraint_name,
  kc.type_desc AS constraint_type,
  STRING_AGG(c.name, ', ') WITHIN GROUP (ORDER BY ic.key_ordinal) AS columns,
  NULL AS foreign_table_schema,
  NULL AS foreign_table_name,
  NULL AS foreign_columns
FROM sys.key_constraints kc
INNER JOIN sys.tables t ON kc.parent_object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
INNER JOIN sys.index_columns ic
  ON kc.parent_object_id = ic.object_id AND kc.unique_index_id = ic.index_id
INNER JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
WHERE s.name = @p1 AND t.name = @p2
GROUP BY kc.name, kc.type_desc

UNION ALL

SELECT
  fk.name AS constraint_name,
  'FOREIGN_KEY' AS constraint_type,
  STRING_AGG(pc.name, ', ') WITHIN GROUP (ORDER BY fkc.constraint_column_id) AS columns,
  rs.name AS foreign_table_schema,
  rt.name AS foreign_table_name,
  STRING_AGG(rc.name, ', ') WITHIN GROUP (ORDER BY fkc.constraint_column_id) AS foreign_columns
FROM sys.foreign_keys fk
INNER JOIN sys.tables pt ON fk.parent_object_id = pt.object_id
INNER JOIN sys.schemas ps ON pt.schema_id = ps.schema_id
INNER JOIN sys.tables rt ON fk.referenced_object_id = rt.object_id
INNER JOIN sys.schemas rs ON rt.schema_id = rs.schema_id
INNER JOIN sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
INNER JOIN sys.columns pc
  ON fkc.parent_object_id = pc.object_id AND fkc.parent_column_id = pc.column_id
INNER JOIN sys.columns rc
  ON fkc.referenced_object_id = rc.object_id AND fkc.referenced_column_id = rc.column_id
WHERE ps.name = @p1 AND pt.name = @p2
GROUP BY fk.name, rs.name, rt.name
"""

INDEXES_QUERY = """
SELECT
  i.name AS index_name,
  i.is_unique,
  i.is_primary_key AS is_primary,
  STRING_AGG(c.name, ', ') WITHIN GROUP (ORDER BY ic.key_ordinal) AS columns
FROM sys.indexes i
INNER JOIN sys.tables t ON i.object_id = t.object_id
INNER JOIN sys.schemas s ON t.schema_id = s.schema_id
INNER JOIN sys.index_columns ic ON i.object_id = ic.object_id AND i.index_id = ic.index_id
INNER JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
WHERE s.name = @p1 AND t.name = @p2 AND i.name IS NOT NULL
GROUP BY i.name, i.is_unique, i.is_primary_key
"""


class TableNotFoundError(LookupError):
    """Raised when the requested schema.table does not exist."""

    pass


def _fetch(conn: Any, sql: str, schema: str, table: str) -> list[dict[str, Any]]:
    cur = execute(conn, sql, {"p1": schema, "p2": table})
    try:
        return cursor_to_dicts(cur)
    finally:
        cur.close()


def _column(col: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": col["column_name"],
        "dataType": col["data_type"],
        "nullable": col["is_nullable"] == "YES",
        "defaultValue": col["column_default"],
        "maxLength": col["character_maximum_length"],
        "numericPrecision": col["numeric_precision"],
        "numericScale": col["numeric_scale"],
        "comment": col["column_comment"],
    }


def _constraint(con: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": con["constraint_name"],
        "type": con["constraint_type"],
        "columns": con["columns"],
        "foreignTableSchema": con["foreign_table_schema"],
        "foreignTableName": con["foreign_table_name"],
        "foreignColumns": con["foreign_columns"],
    }


def _index(idx: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": idx["index_name"],
        "isUnique": bool(idx["is_unique"]),
        "isPrimary": bool(idx["is_primary"]),
        "columns": idx["columns"],
    }


def on_event(event: BlockEvent) -> None:
    schema = event.input_config.get("schema") or DEFAULT_SCHEMA
    table = event.input_config["table"]

    with event.pool().connection() as conn:
        tables = _fetch(conn, TABLE_QUERY, schema, table)
        if not tables:
            raise TableNotFoundError(f"Table {schema}.{table} not found")
        columns = _fetch(conn, COLUMNS_QUERY, schema, table)
        constraints = _fetch(conn, CONSTRAINTS_QUERY, schema, table)
        indexes = _fetch(conn, INDEXES_QUERY, schema, table)

    info = tables[0]
    event.emit(
        make_json_safe(
            {
                "schema": info["table_schema"],
                "tableName": info["table_name"],
                "tableType": info["table_type"],
                "tableComment": info["table_comment"],
                "columns": [_column(c) for c in columns],
                "constraints": [_constraint(c) for c in constraints],
                "indexes": [_index(i) for i in indexes],
            }
        )
    )


def _string(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


get_table_info = Block(
    block_id="getTableInfo",
    name="Get Table Info",
    description="Retrieves schema information about tables and columns",
    category="Utility",
    config={
        "schema": ConfigField(
            name="Schema Name",
            description="Database schema name",
            type="string",
            required=False,
        ),
        "table": ConfigField(
            name="Table Name",
            description="Table name to get information about",
            type="string",
            required=True,
        ),
    },
    output=output_declaration(
        "Table Information",
        "Complete schema information about the table",
        {
            "type": "object",
            "properties": {
                "schema": _string("Schema name"),
                "tableName": _string("Table name"),
                "tableType": _string("Table type (BASE TABLE, VIEW, etc.)"),
                "tableComment": _string("Table comment/description"),
                "columns": {
                    "type": "array",
                    "description": "Array of column definitions",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": _string("Column name"),
                            "dataType": _string("SQL Server data type"),
                            "nullable": {
                                "type": "boolean",
                                "description": "Whether the column allows NULL values",
                            },
                            "defaultValue": _string("Default value expression"),
                            "maxLength": {
                                "type": "number",
                                "description": "Maximum length (for string/binary types)",
                            },
                            "numericPrecision": {
                                "type": "number",
                                "description": "Numeric precision (for numeric types)",
                            },
                            "numericScale": {
                                "type": "number",
                                "description": "Numeric scale (for numeric types)",
                            },
                            "comment": _string("Column comment/description"),
                        },
                    },
                },
                "constraints": {
                    "type": "array",
                    "description": "Array of table constraints",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": _string("Constraint name"),
                            "type": _string(
                                "Constraint type (PRIMARY_KEY, FOREIGN_KEY, UNIQUE_CONSTRAINT)"
                            ),
                            "columns": _string("Columns involved in the constraint"),
                            "foreignTableSchema": _string(
                                "Referenced table schema (for foreign keys)"
                            ),
                            "foreignTableName": _string(
                                "Referenced table name (for foreign keys)"
                            ),
                            "foreignColumns": _string(
                                "Referenced columns (for foreign keys)"
                            ),
                        },
                    },
                },
                "indexes": {
                    "type": "array",
                    "description": "Array of table indexes",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": _string("Index name"),
                            "isUnique": {
                                "type": "boolean",
                                "description": "Whether the index enforces uniqueness",
                            },
                            "isPrimary": {
                                "type": "boolean",
                                "description": "Whether this is the primary key index",
                            },
                            "columns": _string("Columns included in the index"),
                        },
                    },
                },
            },
            "required": [
                "schema",
                "tableName",
                "tableType",
                "columns",
                "constraints",
                "indexes",
            ],
        },
    ),
    on_event=on_event,
)
