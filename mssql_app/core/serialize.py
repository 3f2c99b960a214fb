"""
JSON-safe conversion of driver values for emitted events.

Integers outside the JavaScript safe range are emitted as strings so
downstream JSON consumers do not silently lose precision (BIGINT columns).
"""

import base64
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

MAX_SAFE_INTEGER = 2**53 - 1


def _int_safe(value: int) -> int | str:
    if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
        return value
    return str(value)


def make_json_safe(obj: Any) -> Any:
    """Recursively convert non-JSON-serializable types to safe primitives."""
    if obj is None or isinstance(obj, (bool, float, str)):
        return obj
    if isinstance(obj, int):
        return _int_safe(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Decimal):
        # Preserve integer-valued decimals as int, otherwise float
        if obj.is_finite() and obj == obj.to_integral_value():
            return _int_safe(int(obj))
        return float(obj)
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, dict):
        return {str(k): make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [make_json_safe(item) for item in obj]
    if isinstance(obj, set):
        return [make_json_safe(item) for item in sorted(obj, key=str)]
    return str(obj)


def serialize_row(row: dict[str, Any]) -> dict[str, Any]:
    """Serialize one result row (column name -> value)."""
    return {key: make_json_safe(value) for key, value in row.items()}
