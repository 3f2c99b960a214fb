"""
Request/response schemas for the app and block endpoints.

Bodies mirror the platform's event shape:
``{"app": {"config": {...}}, "event": {"inputConfig": {...}}}``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import SQLModel


class AppIn(SQLModel):
    """Installed app: raw config values as entered on the platform."""

    config: dict[str, Any] = Field(default_factory=dict)


class EventIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_config: dict[str, Any] = Field(default_factory=dict, alias="inputConfig")


class BlockEventIn(SQLModel):
    """Body for POST /blocks/{block_id}/events."""

    app: AppIn
    event: EventIn = Field(default_factory=EventIn)


class BlockEventsOut(SQLModel):
    """All events emitted by one block invocation, in order."""

    block: str
    events: list[dict[str, Any]]


class AppSyncIn(SQLModel):
    """Body for POST /app/sync."""

    config: dict[str, Any] = Field(default_factory=dict)
