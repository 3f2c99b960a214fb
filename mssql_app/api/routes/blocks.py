"""
Block endpoints: declarations and invocation.

POST /blocks/{block_id}/events runs the block and returns every emitted event.
POST /blocks/{block_id}/events/stream returns the events as NDJSON while the
block is still running (useful for streamQuery on large result sets).
"""

import asyncio
import json
import logging
import threading
from collections.abc import Iterator
from typing import Any

import pyodbc
from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from mssql_app.api.deps import BlockDep, PoolManagerDep
from mssql_app.blocks import BLOCKS, Block, BlockInputError, TableNotFoundError
from mssql_app.core.config_fields import ConfigFieldError
from mssql_app.core.params import ParamBindError
from mssql_app.core.pool import PoolManager, PoolTimeoutError
from mssql_app.core.stream import RowStream
from mssql_app.definition import load_app_config
from mssql_app.models import AppConfig
from mssql_app.schemas import BlockEventIn, BlockEventsOut

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["blocks"])

WORKER_JOIN_TIMEOUT_SEC = 5.0


def block_error_status(exc: BaseException) -> tuple[int, str]:
    """HTTP status and detail for an exception raised by a block."""
    if isinstance(exc, (BlockInputError, ParamBindError, ConfigFieldError)):
        return 400, str(exc)
    if isinstance(exc, TableNotFoundError):
        return 404, str(exc)
    if isinstance(exc, PoolTimeoutError):
        return 503, str(exc)
    if isinstance(exc, pyodbc.Error):
        return 502, f"SQL Server error: {exc}"
    return 500, "Block execution failed"


def _load_config(body: BlockEventIn) -> AppConfig:
    try:
        return load_app_config(body.app.config)
    except ConfigFieldError as e:
        raise HTTPException(status_code=400, detail=f"Invalid app config: {e}") from e


def _run_collect(
    block: Block,
    config: AppConfig,
    input_config: dict[str, Any],
    pool_manager: PoolManager,
) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    block.run(config, input_config, events.append, pool_manager=pool_manager)
    return events


@router.get("", response_model=list[dict[str, Any]])
def list_blocks() -> Any:
    """All block declarations."""
    return [b.describe() for b in BLOCKS.values()]


@router.get("/{block_id}", response_model=dict[str, Any])
def get_block(block: BlockDep) -> Any:
    return block.describe()


@router.post("/{block_id}/events", response_model=BlockEventsOut)
async def run_block(
    block: BlockDep,
    body: BlockEventIn,
    pool_manager: PoolManagerDep,
) -> Any:
    """Run the block once and return the emitted events in order."""
    config = _load_config(body)
    try:
        # Run in thread pool so the event loop is not blocked by the driver
        events = await asyncio.to_thread(
            _run_collect, block, config, body.event.input_config, pool_manager
        )
    except Exception as e:
        status_code, detail = block_error_status(e)
        if status_code >= 500:
            _log.error(
                "Block %s failed: %s",
                block.block_id,
                e,
                exc_info=True,
                extra={"block": block.block_id, "server": config.server},
            )
        else:
            _log.warning("Block %s rejected: %s", block.block_id, e)
        raise HTTPException(status_code=status_code, detail=detail) from e
    return BlockEventsOut(block=block.block_id, events=events)


class _StreamCancelled(Exception):
    """Raised inside the block when the NDJSON consumer has gone away."""


def stream_block_events(
    block: Block,
    config: AppConfig,
    input_config: dict[str, Any],
    pool_manager: PoolManager,
) -> Iterator[str]:
    """
    Run the block on a worker thread and yield each emitted event as one
    JSON line. Closing the generator cancels the block at its next emit and
    waits (bounded) for the worker to release its connection.
    """
    stream = RowStream()

    def _emit(event: dict[str, Any]) -> None:
        if stream.cancelled:
            raise _StreamCancelled()
        stream.on_row(event)

    def _worker() -> None:
        try:
            block.run(config, input_config, _emit, pool_manager=pool_manager)
        except _StreamCancelled:
            _log.info("Streaming block %s cancelled by client", block.block_id)
        except Exception as e:
            stream.on_error(e)
        else:
            stream.on_done()

    worker = threading.Thread(target=_worker, name=f"block-{block.block_id}", daemon=True)
    worker.start()
    try:
        for event in stream:
            yield json.dumps(event, default=str) + "\n"
    except Exception as e:
        status_code, detail = block_error_status(e)
        _log.error("Streaming block %s failed: %s", block.block_id, e)
        yield json.dumps({"error": {"status": status_code, "detail": detail}}) + "\n"
    finally:
        stream.close()
        worker.join(WORKER_JOIN_TIMEOUT_SEC)


@router.post("/{block_id}/events/stream")
def run_block_stream(
    block: BlockDep,
    body: BlockEventIn,
    pool_manager: PoolManagerDep,
) -> StreamingResponse:
    """
    Stream each emitted event as one JSON line. Failures after the first
    byte are reported as a final ``{"error": {...}}`` line.
    """
    config = _load_config(body)
    try:
        input_config = block.validate_input(body.event.input_config)
    except BlockInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return StreamingResponse(
        stream_block_events(block, config, input_config, pool_manager),
        media_type="application/x-ndjson",
    )
