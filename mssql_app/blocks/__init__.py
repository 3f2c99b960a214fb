"""
Block registry for Microsoft SQL Server.

BLOCKS maps block id -> Block for registration with the platform.
"""

from .base import Block, BlockEvent, BlockInputError
from .bulk_insert import bulk_insert
from .execute_command import execute_command
from .execute_query import execute_query
from .get_table_info import TableNotFoundError, get_table_info
from .stream_query import stream_query

BLOCKS: dict[str, Block] = {
    b.block_id: b
    for b in (execute_query, execute_command, bulk_insert, stream_query, get_table_info)
}


def get_block(block_id: str) -> Block | None:
    return BLOCKS.get(block_id)


__all__ = [
    "BLOCKS",
    "Block",
    "BlockEvent",
    "BlockInputError",
    "TableNotFoundError",
    "get_block",
    "execute_query",
    "execute_command",
    "bulk_insert",
    "stream_query",
    "get_table_info",
]
