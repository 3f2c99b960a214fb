"""
Block definition and per-event context.

A Block is a declarative description (name, category, input config fields,
output schema) plus an on_event handler. The handler receives a BlockEvent
carrying the validated app config, the validated input config and an emit()
callback for result events.
"""

import logging
from collections.abc import Callable
from typing import Any

from mssql_app.core.config_fields import (
    ConfigField,
    ConfigFieldError,
    describe_fields,
    validate_config,
)
from mssql_app.core.pool import PoolManager, get_pool_manager
from mssql_app.models import AppConfig

_log = logging.getLogger(__name__)

Emit = Callable[[dict[str, Any]], None]


class BlockInputError(ValueError):
    """Raised when a block's input config is invalid."""

    pass


class BlockEvent:
    """Inputs for one block invocation."""

    def __init__(
        self,
        *,
        app_config: AppConfig,
        input_config: dict[str, Any],
        emit: Emit,
        pool_manager: PoolManager | None = None,
    ) -> None:
        self.app_config = app_config
        self.input_config = input_config
        self._emit = emit
        self.pool_manager = pool_manager or get_pool_manager()
        self.emitted = 0

    def emit(self, payload: dict[str, Any]) -> None:
        self._emit(payload)
        self.emitted += 1

    def pool(self) -> Any:
        return self.pool_manager.get_pool(self.app_config)


class Block:
    """One callable unit exposed to the workflow platform."""

    def __init__(
        self,
        *,
        block_id: str,
        name: str,
        description: str,
        category: str,
        config: dict[str, ConfigField],
        output: dict[str, Any],
        on_event: Callable[[BlockEvent], None],
    ) -> None:
        self.block_id = block_id
        self.name = name
        self.description = description
        self.category = category
        self.config = config
        self.output = output
        self._on_event = on_event

    def validate_input(self, input_config: dict[str, Any] | None) -> dict[str, Any]:
        try:
            return validate_config(self.config, input_config)
        except ConfigFieldError as e:
            raise BlockInputError(str(e)) from e

    def run(
        self,
        app_config: AppConfig,
        input_config: dict[str, Any] | None,
        emit: Emit,
        *,
        pool_manager: PoolManager | None = None,
    ) -> int:
        """Validate input, run the handler and return the number of emitted events."""
        event = BlockEvent(
            app_config=app_config,
            input_config=self.validate_input(input_config),
            emit=emit,
            pool_manager=pool_manager,
        )
        _log.debug("Running block %s", self.block_id)
        self._on_event(event)
        return event.emitted

    def describe(self) -> dict[str, Any]:
        """JSON-ready declaration (inputs and outputs)."""
        return {
            "id": self.block_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "inputs": {"default": {"config": describe_fields(self.config)}},
            "outputs": {"default": self.output},
        }


def output_declaration(
    name: str, description: str, schema: dict[str, Any]
) -> dict[str, Any]:
    """Default output: primary, parented on the default input."""
    return {
        "name": name,
        "description": description,
        "default": True,
        "possiblePrimaryParents": ["default"],
        "type": schema,
    }


PARAMETERS_FIELD = ConfigField(
    name="Parameters",
    description=(
        "Map of parameter names to values "
        "(e.g. { userId: 123, name: 'John' } for @userId, @name)"
    ),
    type={"type": "object", "additionalProperties": True},
    required=False,
)
