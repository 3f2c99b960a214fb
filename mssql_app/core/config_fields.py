"""
Config field declarations and validation.

Blocks and the app itself declare their configuration as ConfigField entries
(name, description, type, required, default, sensitive). validate_config()
applies defaults, checks required values and coerces simple types before a
block handler sees the input.
"""

from __future__ import annotations

import json
import math
from typing import Any

from sqlmodel import SQLModel


class ConfigFieldError(ValueError):
    """Raised when a config value is missing or fails type coercion."""

    pass


class ConfigField(SQLModel):
    """Declarative metadata for one config key."""

    name: str
    description: str = ""
    # "string" | "number" | "boolean" | JSON schema dict for arrays/objects
    type: str | dict[str, Any] = "string"
    required: bool = False
    default: Any = None
    sensitive: bool = False


def _type_name(field: ConfigField) -> str:
    if isinstance(field.type, dict):
        return str(field.type.get("type") or "object")
    return field.type


def _coerce_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ConfigFieldError(f"Expected string, got {type(value).__name__}")
    return str(value)


def _coerce_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise ConfigFieldError("Boolean not allowed for number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ConfigFieldError(f"Number must be finite, got {value!r}")
        return value
    s = str(value).strip()
    if not s:
        raise ConfigFieldError("Value is empty")
    try:
        x = float(s)
    except ValueError as e:
        raise ConfigFieldError(f"Invalid number: {s!r}") from e
    if not math.isfinite(x):
        raise ConfigFieldError(f"Number must be finite, got {s!r}")
    return int(x) if x.is_integer() else x


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    s = str(value).strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    raise ConfigFieldError(f"Expected boolean (true/false, 1/0, yes/no), got: {value!r}")


def _coerce_json(value: Any, expected: type, label: str) -> Any:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise ConfigFieldError(f"Invalid JSON {label}") from e
    if not isinstance(value, expected):
        raise ConfigFieldError(f"Expected {label}, got {type(value).__name__}")
    return value


def coerce_value(field: ConfigField, value: Any) -> Any:
    """Coerce a single non-None value according to field.type."""
    t = _type_name(field)
    if t == "string":
        return _coerce_string(value)
    if t in ("number", "integer"):
        return _coerce_number(value)
    if t == "boolean":
        return _coerce_boolean(value)
    if t == "array":
        return _coerce_json(value, list, "array")
    if t == "object":
        return _coerce_json(value, dict, "object")
    return value


def validate_config(
    fields: dict[str, ConfigField], values: dict[str, Any] | None
) -> dict[str, Any]:
    """
    Validate values against declared fields and return a new dict.

    - Missing values take the field default.
    - Required fields must end up non-None (empty string counts as missing).
    - Keys not declared are passed through unchanged.
    """
    raw = dict(values or {})
    out: dict[str, Any] = dict(raw)
    missing: list[str] = []
    for key, field in fields.items():
        value = raw.get(key)
        if value is None:
            value = field.default
        if value is None or (field.required and value == ""):
            if field.required:
                missing.append(key)
            out[key] = None
            continue
        try:
            out[key] = coerce_value(field, value)
        except ConfigFieldError as e:
            raise ConfigFieldError(f"{key}: {e}") from e
    if missing:
        raise ConfigFieldError(f"Missing required config: {', '.join(missing)}")
    return out


def describe_fields(fields: dict[str, ConfigField]) -> dict[str, dict[str, Any]]:
    """JSON-ready declarations (for the app/blocks listing)."""
    return {k: f.model_dump(exclude_none=True) for k, f in fields.items()}
