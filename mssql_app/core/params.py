"""
Named parameter binding for SQL Server.

pyodbc only understands positional ``?`` markers, while block users write
``@name`` placeholders. Statements with parameters are therefore wrapped in
``sp_executesql`` with a declaration list inferred from the Python values:

    EXEC sp_executesql ?, ?, @userId = ?, @name = ?
      args: [sql, "@userId INT, @name NVARCHAR(MAX)", 123, "John"]
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


class ParamBindError(ValueError):
    """Raised when a parameter name or value cannot be bound."""

    pass


def normalize_name(name: str) -> str:
    """Strip a leading ``@`` and validate the identifier."""
    n = str(name).strip()
    if n.startswith("@"):
        n = n[1:]
    if not _NAME_RE.match(n):
        raise ParamBindError(f"Invalid parameter name: {name!r}")
    return n


def _decimal_type(value: Decimal) -> str:
    exp = value.as_tuple().exponent
    scale = -exp if isinstance(exp, int) and exp < 0 else 0
    return f"DECIMAL(38, {min(scale, 38)})"


def sql_type_for(value: Any) -> str:
    """SQL Server type used to declare a parameter holding value."""
    if value is None:
        return "NVARCHAR(MAX)"
    if isinstance(value, bool):
        return "BIT"
    if isinstance(value, int):
        if _INT32_MIN <= value <= _INT32_MAX:
            return "INT"
        if _INT64_MIN <= value <= _INT64_MAX:
            return "BIGINT"
        return "DECIMAL(38, 0)"
    if isinstance(value, float):
        return "FLOAT"
    if isinstance(value, Decimal):
        return _decimal_type(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "VARBINARY(MAX)"
    if isinstance(value, datetime):
        return "DATETIMEOFFSET" if value.tzinfo is not None else "DATETIME2"
    if isinstance(value, date):
        return "DATE"
    if isinstance(value, time):
        return "TIME"
    if isinstance(value, uuid.UUID):
        return "UNIQUEIDENTIFIER"
    return "NVARCHAR(MAX)"


def to_driver_value(value: Any) -> Any:
    """Convert value into something pyodbc binds with the declared type."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int) and not (_INT64_MIN <= value <= _INT64_MAX):
        return Decimal(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return value


def bind_parameters(
    sql: str, params: dict[str, Any] | None
) -> tuple[str, list[Any]]:
    """
    Return (statement, args) ready for cursor.execute.

    With no params the SQL is returned untouched so plain batches keep
    working without sp_executesql.
    """
    if not params:
        return sql, []
    names: list[str] = []
    declarations: list[str] = []
    values: list[Any] = []
    seen: set[str] = set()
    for raw_name, value in params.items():
        name = normalize_name(raw_name)
        if name.lower() in seen:
            raise ParamBindError(f"Duplicate parameter name: {name!r}")
        seen.add(name.lower())
        names.append(name)
        declarations.append(f"@{name} {sql_type_for(value)}")
        values.append(to_driver_value(value))

    assignments = ", ".join(f"@{n} = ?" for n in names)
    statement = f"EXEC sp_executesql ?, ?, {assignments}"
    return statement, [sql, ", ".join(declarations), *values]
