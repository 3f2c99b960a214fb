from typing import Annotated

from fastapi import Depends, HTTPException, status

from mssql_app.blocks import Block, get_block
from mssql_app.core.pool import PoolManager, get_pool_manager


def get_pool_manager_dep() -> PoolManager:
    return get_pool_manager()


PoolManagerDep = Annotated[PoolManager, Depends(get_pool_manager_dep)]


def get_block_or_404(block_id: str) -> Block:
    block = get_block(block_id)
    if block is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Block not found: {block_id}",
        )
    return block


BlockDep = Annotated[Block, Depends(get_block_or_404)]
